import os

from .adapter import DynamoDBAdapter
from .filter import filter_rules, matches_filter

config_path = os.path.join(os.path.dirname(__file__), "rbac_model.conf")
