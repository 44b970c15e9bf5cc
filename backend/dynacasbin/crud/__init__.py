from .casbin_rule import CasbinRuleCrud, BATCH_WRITE_LIMIT
