import hashlib
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dynacasbin.core.exceptions import RuleContractViolation

FIELD_COUNT = 6
FIELD_NAMES = tuple(f"v{i}" for i in range(FIELD_COUNT))


def generate_id(ptype: str, fields: Sequence[str]) -> str:
    """
    md5 over the rule rendered as ``{<id> <ptype> <v0> ... <v5>}`` with the id
    slot left empty, e.g. ``{ p alice data1 read   }``. Tables written by the
    other implementations of this adapter are keyed the same way.
    """
    text = "{%s}" % " ".join(("", ptype, *fields))
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()


class CasbinRule(BaseModel):
    """
    A casbin policy line as stored in DynamoDB.

    Items carry the attributes ``ID``, ``PType`` and ``V0``..``V5``; ``ID`` is
    the table hash key and is derived from the content, so storing the same
    rule twice always lands on the same item.

    For ptype = "p" (permissions):
        - v0: subject or role
        - v1: resource
        - v2: action

    For ptype = "g" / "g2" (role assignment):
        - v0: user or role
        - v1: role inherited from
        - v2: domain, when the model uses one
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="ID", description="Content hash of ptype and v0..v5")
    ptype: str = Field(alias="PType", description="Rule kind: p, g, p2, g2, ...")
    v0: str = Field(default="", alias="V0")
    v1: str = Field(default="", alias="V1")
    v2: str = Field(default="", alias="V2")
    v3: str = Field(default="", alias="V3")
    v4: str = Field(default="", alias="V4")
    v5: str = Field(default="", alias="V5")

    @classmethod
    def from_rule(cls, ptype: str, rule: Sequence[str]) -> "CasbinRule":
        if len(rule) > FIELD_COUNT:
            raise RuleContractViolation(
                f"Rule for ptype '{ptype}' has {len(rule)} fields, at most "
                f"{FIELD_COUNT} can be stored: {list(rule)}"
            )
        fields = [str(value) for value in rule]
        fields += [""] * (FIELD_COUNT - len(fields))

        return cls(
            id=generate_id(ptype, fields),
            ptype=ptype,
            **dict(zip(FIELD_NAMES, fields)),
        )

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "CasbinRule":
        """Build a record from a deserialized DynamoDB item."""
        return cls.model_validate(
            {
                key: item.get(key, "")
                for key in ("ID", "PType", *(f"V{i}" for i in range(FIELD_COUNT)))
            }
        )

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(getattr(self, name) for name in FIELD_NAMES)

    def to_item(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)

    def to_rule(self) -> list[str]:
        """Positional fields with trailing empty fields dropped."""
        fields = list(self.fields)
        while fields and fields[-1] == "":
            fields.pop()
        return fields

    def to_policy_line(self) -> str:
        # Interior empty fields stay as empty tokens so later fields keep
        # their position when casbin splits the line again.
        return ", ".join([self.ptype, *self.to_rule()])

    def __str__(self):
        return self.to_policy_line()
