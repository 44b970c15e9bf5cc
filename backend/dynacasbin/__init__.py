from dynacasbin.core.rbac import DynamoDBAdapter
from dynacasbin.models import CasbinRule

__version__ = "0.1.0"
