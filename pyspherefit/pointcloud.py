"""
PointCloud: read-only point storage handed to sphere models.

Positions are kept as an (N, 3) float64 array. Any other per-point data
(normals, colors, labels, ...) lives in named fields that share the leading
dimension. Open3D is only needed for file I/O and conversion.
"""
import numpy as np


def _frozen(array):
    array.setflags(write=False)
    return array


class PointCloud:
    def __init__(self, points, fields=None):
        """
        Args:
            points: (N, 3) array-like of x, y, z coordinates
            fields: Optional mapping of name -> array with N rows
        """
        points = np.array(points, dtype=np.float64)
        if points.ndim == 1 and points.size == 0:
            points = points.reshape(0, 3)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"points must have shape (N, 3), got {points.shape}")
        self._points = _frozen(points)

        self._fields = {}
        for name, values in (fields or {}).items():
            values = np.array(values)
            if len(values) != len(points):
                raise ValueError(
                    f"field '{name}' has {len(values)} entries, expected {len(points)}"
                )
            self._fields[name] = _frozen(values)

    @classmethod
    def from_file(cls, filename):
        """Load a point cloud from any format Open3D reads (PLY, PCD, XYZ, ...)."""
        import open3d as o3d
        return cls.from_open3d(o3d.io.read_point_cloud(filename))

    @classmethod
    def from_open3d(cls, o3d_pcd):
        """Wrap an open3d.geometry.PointCloud, keeping its normals and colors."""
        fields = {}
        if o3d_pcd.has_normals():
            fields['normals'] = np.asarray(o3d_pcd.normals)
        if o3d_pcd.has_colors():
            fields['colors'] = np.asarray(o3d_pcd.colors)
        return cls(np.asarray(o3d_pcd.points), fields)

    def to_open3d(self):
        """Build an open3d.geometry.PointCloud (only normals and colors are carried)."""
        import open3d as o3d
        pcd = o3d.geometry.PointCloud()
        pcd.points = o3d.utility.Vector3dVector(self._points)
        if 'normals' in self._fields:
            pcd.normals = o3d.utility.Vector3dVector(np.asarray(self._fields['normals'], dtype=np.float64))
        if 'colors' in self._fields:
            pcd.colors = o3d.utility.Vector3dVector(np.asarray(self._fields['colors'], dtype=np.float64))
        return pcd

    def to_numpy(self):
        """Return points as a read-only Nx3 numpy array."""
        return self._points

    @property
    def field_names(self):
        return tuple(self._fields)

    def field(self, name):
        """Return the read-only array stored under ``name``."""
        return self._fields[name]

    def has_field(self, name):
        return name in self._fields

    def normals_numpy(self):
        """Return normals as Nx3 numpy array, or None when the cloud has none."""
        return self._fields.get('normals')

    def __len__(self):
        return len(self._points)

    def __getitem__(self, index):
        x, y, z = self._points[index]
        return float(x), float(y), float(z)

    def select(self, indices, copy_data_fields=True):
        """
        Build a new cloud from a subset of this one, in the order given.

        Args:
            indices: Sequence of point indices
            copy_data_fields: Also carry the non-positional fields along
        """
        indices = np.asarray(indices, dtype=np.intp)
        fields = {name: values[indices] for name, values in self._fields.items()} if copy_data_fields else None
        return PointCloud(self._points[indices], fields)

    def with_points(self, points):
        """Return a cloud with new positions and this cloud's fields."""
        return PointCloud(points, dict(self._fields))

    def __repr__(self):
        extra = f", fields={list(self._fields)}" if self._fields else ""
        return f"PointCloud(n_points={len(self)}{extra})"
