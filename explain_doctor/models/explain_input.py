"""
EXPLAIN FORMAT=JSON input model

Raw EXPLAIN documents are loosely shaped: every key is optional, costs arrive
as strings and malformed fragments are common. The models below decode the
document once at the boundary. Unknown keys are ignored and numeric values
that cannot be read become None ("unknown") instead of zero.
"""

import json
import math
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from explain_doctor.core.exceptions import InvalidExplainDataError


def to_optional_float(value: Any) -> Optional[float]:
    """Read a numeric EXPLAIN value, returning None when unknown"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _mapping_or_none(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value
    return None


def _text_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text if text else None


class _ExplainModel(BaseModel):
    model_config = ConfigDict(extra='ignore')


class CostInfo(_ExplainModel):
    """cost_info object of a query block or table"""

    query_cost: Optional[float] = None
    read_cost: Optional[float] = None
    eval_cost: Optional[float] = None
    prefix_cost: Optional[float] = None

    @field_validator('query_cost', 'read_cost', 'eval_cost', 'prefix_cost', mode='before')
    @classmethod
    def _numeric(cls, v: Any) -> Optional[float]:
        return to_optional_float(v)


class ExplainTable(_ExplainModel):
    """A single table access"""

    table_name: Optional[str] = None
    access_type: Optional[str] = None
    possible_keys: List[str] = []
    key: Optional[str] = None
    rows_examined_per_scan: Optional[float] = None
    filtered: Optional[float] = None
    cost_info: Optional[CostInfo] = None
    attached_condition: Optional[str] = None

    @field_validator('table_name', 'access_type', 'key', 'attached_condition', mode='before')
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    @field_validator('rows_examined_per_scan', 'filtered', mode='before')
    @classmethod
    def _numeric(cls, v: Any) -> Optional[float]:
        return to_optional_float(v)

    @field_validator('possible_keys', mode='before')
    @classmethod
    def _keys(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(',')
        if not isinstance(v, (list, tuple)):
            return []
        keys: List[str] = []
        for item in v:
            name = str(item).strip() if item is not None else ""
            if name and name not in keys:
                keys.append(name)
        return keys

    @field_validator('cost_info', mode='before')
    @classmethod
    def _cost(cls, v: Any) -> Any:
        return _mapping_or_none(v)

    @property
    def read_cost(self) -> Optional[float]:
        return self.cost_info.read_cost if self.cost_info else None


class NestedLoopEntry(_ExplainModel):
    """One member of a nested_loop list"""

    table: Optional[ExplainTable] = None

    @field_validator('table', mode='before')
    @classmethod
    def _table(cls, v: Any) -> Any:
        return _mapping_or_none(v)


class PlanOperation(_ExplainModel):
    """grouping_operation / ordering_operation wrapper"""

    using_filesort: Optional[bool] = None
    using_temporary_table: Optional[bool] = None
    table: Optional[ExplainTable] = None

    @field_validator('table', mode='before')
    @classmethod
    def _table(cls, v: Any) -> Any:
        return _mapping_or_none(v)

    @field_validator('using_filesort', 'using_temporary_table', mode='before')
    @classmethod
    def _flag(cls, v: Any) -> Optional[bool]:
        return v if isinstance(v, bool) else None


class QueryBlock(_ExplainModel):
    """query_block object"""

    select_id: Optional[int] = None
    cost_info: Optional[CostInfo] = None
    table: Optional[ExplainTable] = None
    nested_loop: Optional[List[NestedLoopEntry]] = None
    grouping_operation: Optional[PlanOperation] = None
    ordering_operation: Optional[PlanOperation] = None
    query_block: Optional['QueryBlock'] = None

    @field_validator('select_id', mode='before')
    @classmethod
    def _select_id(cls, v: Any) -> Optional[int]:
        number = to_optional_float(v)
        if number is None or not number.is_integer():
            return None
        return int(number)

    @field_validator('cost_info', 'table', 'grouping_operation', 'ordering_operation',
                     'query_block', mode='before')
    @classmethod
    def _mapping(cls, v: Any) -> Any:
        return _mapping_or_none(v)

    @field_validator('nested_loop', mode='before')
    @classmethod
    def _nested(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)):
            return None
        # Keep list positions stable, node ids are derived from them
        return [item if isinstance(item, Mapping) else {} for item in v]

    @property
    def query_cost(self) -> Optional[float]:
        return self.cost_info.query_cost if self.cost_info else None

    @property
    def has_operations(self) -> bool:
        """Whether this block carries any table access of its own"""
        return any((
            self.table is not None,
            self.nested_loop is not None,
            self.grouping_operation is not None,
            self.ordering_operation is not None,
        ))


QueryBlock.model_rebuild()


class ExplainDocument(_ExplainModel):
    """Top-level EXPLAIN FORMAT=JSON document"""

    query_block: Optional[QueryBlock] = None

    @field_validator('query_block', mode='before')
    @classmethod
    def _block(cls, v: Any) -> Any:
        return _mapping_or_none(v)

    def root_block(self) -> Optional[QueryBlock]:
        """
        Innermost query block at the root

        Wrapper blocks that only hold another query_block are unwrapped,
        however deep they go. A wrapper's cost_info and select_id carry over
        to the inner block when the inner block has none of its own.
        """
        block = self.query_block
        while block is not None and block.query_block is not None and not block.has_operations:
            inner = block.query_block
            inherited = {}
            if inner.cost_info is None and block.cost_info is not None:
                inherited['cost_info'] = block.cost_info
            if inner.select_id is None and block.select_id is not None:
                inherited['select_id'] = block.select_id
            block = inner.model_copy(update=inherited) if inherited else inner
        return block

    @classmethod
    def parse(cls, payload: Any) -> 'ExplainDocument':
        """Decode any accepted payload form into a document"""
        if isinstance(payload, ExplainDocument):
            return payload
        try:
            return cls.model_validate(decode_explain_payload(payload))
        except ValidationError as e:
            raise InvalidExplainDataError(str(e))


def decode_explain_payload(payload: Any) -> dict:
    """
    Normalize an EXPLAIN payload into a JSON object

    Accepts a mapping, JSON text or bytes, the single-column row
    ``{"EXPLAIN": "<json>"}`` returned by MySQL drivers, or a list holding
    that row.

    Raises:
        InvalidExplainDataError: If the payload is not a JSON object
    """
    if isinstance(payload, (list, tuple)):
        if len(payload) != 1:
            raise InvalidExplainDataError(f"expected one EXPLAIN row, got {len(payload)}")
        payload = payload[0]

    if isinstance(payload, bytes):
        payload = payload.decode('utf-8', errors='replace')

    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise InvalidExplainDataError(f"not valid JSON: {e}")

    if not isinstance(payload, Mapping):
        raise InvalidExplainDataError(f"expected a JSON object, got {type(payload).__name__}")

    wrapped = payload.get('EXPLAIN')
    if wrapped is not None and 'query_block' not in payload:
        return decode_explain_payload(wrapped)

    return dict(payload)
