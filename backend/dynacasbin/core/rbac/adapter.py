import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from casbin import persist

from dynacasbin.core.config import settings
from dynacasbin.core.dynamodb import DynamoDBClient
from dynacasbin.core.exceptions import (
    ConditionalCheckFailure,
    CountMismatchError,
    PolicyLoadError,
    TransientStoreError,
)
from dynacasbin.core.rbac.filter import filter_rules
from dynacasbin.crud import CasbinRuleCrud
from dynacasbin.models import CasbinRule
from dynacasbin.utils import mask_string

logger = logging.getLogger(__name__)

POLICY_SECTIONS = ("p", "g")


def _unique_records(records: Sequence[CasbinRule]) -> list[CasbinRule]:
    # a batch write that repeats a key is rejected by DynamoDB
    return list({record.id: record for record in records}.values())


class DynamoDBAdapter(persist.BatchAdapter):
    """Casbin adapter storing one item per policy line in a DynamoDB table.

    Item ids are content hashes, so writes are idempotent. ``save_policy``
    only ever adds items: rules removed from the model since an earlier save
    stay in the table until removed through one of the ``remove_*`` calls.
    """

    def __init__(
        self,
        table_name: str | None = None,
        client=None,
        crud: CasbinRuleCrud | None = None,
    ):
        self.table_name = table_name or settings.CASBIN_TABLE_NAME
        if crud is None:
            dynamodb = DynamoDBClient()
            if client is not None:
                dynamodb.client = client
            dynamodb.check_table(self.table_name)
            crud = CasbinRuleCrud(dynamodb.client, self.table_name)
        self.crud = crud

    def load_policy(self, model):
        """Append every stored rule to ``model``.

        Use ``Enforcer.load_policy`` rather than calling this directly: the
        enforcer starts from an empty model, while calling this twice on the
        same model appends every rule twice.

        The whole table is read before anything is appended, so a failed
        scan raises ``PolicyLoadError`` and leaves ``model`` as it was.

        Rules travel through casbin's comma separated policy line, so a
        field that itself contains a comma (``"data,1"``) comes back split
        into two fields. Empty fields followed by non-empty ones keep their
        position.
        """
        try:
            records = self.crud.read_all()
        except TransientStoreError as err:
            logger.error(
                f"[DynamoDBAdapter.load_policy] Unable to read policies | "
                f"{{'table': '{mask_string(self.table_name)}', 'error': '{str(err)}'}}",
                exc_info=True,
            )
            raise PolicyLoadError(err) from err

        for record in records:
            persist.load_policy_line(record.to_policy_line(), model)

        logger.info(
            f"[DynamoDBAdapter.load_policy] Policies loaded | "
            f"{{'table': '{mask_string(self.table_name)}', 'count': {len(records)}}}"
        )

    def save_policy(self, model):
        records = []
        for sec in POLICY_SECTIONS:
            if sec not in model.model.keys():
                continue
            for ptype, ast in model.model[sec].items():
                for rule in ast.policy:
                    records.append(CasbinRule.from_rule(ptype, rule))

        records = _unique_records(records)
        written = self.crud.create_many(records)
        if written != len(records):
            logger.warning(
                f"[DynamoDBAdapter.save_policy] Some policies were not written | "
                f"{{'table': '{mask_string(self.table_name)}', 'submitted': {len(records)}, 'written': {written}}}"
            )
            raise CountMismatchError(len(records), written)

        logger.info(
            f"[DynamoDBAdapter.save_policy] Policies saved | "
            f"{{'table': '{mask_string(self.table_name)}', 'count': {written}}}"
        )
        return True

    def add_policy(self, sec, ptype, rule):
        self._create(CasbinRule.from_rule(ptype, rule))
        return True

    def _create(self, record: CasbinRule) -> None:
        try:
            self.crud.create(record)
        except ConditionalCheckFailure:
            logger.debug(
                f"[DynamoDBAdapter.add_policy] Policy already stored | "
                f"{{'id': '{record.id}', 'ptype': '{record.ptype}'}}"
            )

    def add_policies(self, sec, ptype, rules):
        """Add rules concurrently, one conditional put each.

        DynamoDB has no conditional batch write. Every rule is validated
        before the first put; after that a failing put does not stop the
        others, so the table may hold part of the batch when this raises.
        Only the first error observed is raised.
        """
        records = _unique_records([CasbinRule.from_rule(ptype, r) for r in rules])
        if not records:
            return True

        first_error = None
        workers = min(settings.DYNAMODB_MAX_WORKERS, len(records))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._create, r) for r in records]
            try:
                for future in as_completed(futures):
                    error = future.exception()
                    if error is not None and first_error is None:
                        first_error = error
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        if first_error is not None:
            logger.error(
                f"[DynamoDBAdapter.add_policies] Batch add failed | "
                f"{{'ptype': '{ptype}', 'count': {len(records)}, 'error': '{str(first_error)}'}}"
            )
            raise first_error

        logger.info(
            f"[DynamoDBAdapter.add_policies] Policies added | "
            f"{{'ptype': '{ptype}', 'count': {len(records)}}}"
        )
        return True

    def remove_policy(self, sec, ptype, rule):
        record = CasbinRule.from_rule(ptype, rule)
        self.crud.delete(record.id)
        return True

    def remove_policies(self, sec, ptype, rules):
        ids = list(dict.fromkeys(CasbinRule.from_rule(ptype, r).id for r in rules))
        if not ids:
            return True
        self._delete_many(ids, "remove_policies")
        return True

    def remove_filtered_policy(self, sec, ptype, field_index, *field_values):
        """Remove every stored ``ptype`` rule matching ``field_values``.

        ``field_values`` are compared with the rule fields starting at
        ``field_index``; empty values and fields outside the window match
        anything.
        """
        records = self.crud.read_all()
        matched = filter_rules(records, ptype, field_index, field_values)
        if not matched:
            return True

        self._delete_many([r.id for r in matched], "remove_filtered_policy")
        return True

    def _delete_many(self, ids: list[str], caller: str) -> None:
        deleted = self.crud.delete_many(ids)
        if deleted != len(ids):
            logger.error(
                f"[DynamoDBAdapter.{caller}] Unexpected number of deletes | "
                f"{{'table': '{mask_string(self.table_name)}', 'expected': {len(ids)}, 'deleted': {deleted}}}"
            )
            raise CountMismatchError(len(ids), deleted)

        logger.info(
            f"[DynamoDBAdapter.{caller}] Policies removed | "
            f"{{'table': '{mask_string(self.table_name)}', 'count': {deleted}}}"
        )
