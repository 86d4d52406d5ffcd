"""
pyspherefit: sphere primitive for sample-consensus fitting of point clouds
"""

# Make core modules available at package level
from .config import SphereModelConfig
from .lanes import detect_vector_width, select_strategy
from .logger import LogLevel, SphereLogger, get_logger, set_logger
from .model import PrimitiveModel, SacModel
from .pointcloud import PointCloud
from .sphere import SphereModel
from .synthetic import generate_sphere_point_cloud
from .utils import fibonacci_sphere, sphere_from_four_points

__all__ = [
    'SphereModelConfig',
    'detect_vector_width',
    'select_strategy',
    'LogLevel',
    'SphereLogger',
    'get_logger',
    'set_logger',
    'PrimitiveModel',
    'SacModel',
    'PointCloud',
    'SphereModel',
    'generate_sphere_point_cloud',
    'fibonacci_sphere',
    'sphere_from_four_points',
]
