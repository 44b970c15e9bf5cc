from .casbin_rule import CasbinRule, FIELD_COUNT, generate_id
