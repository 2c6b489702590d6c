from models.base import (
    EntityBase, ConcurrentEntityBase, ChangeTrackingEntityBase, TemporalEntityBase,
    AUDIT_COLUMNS, SYSTEM_COLUMNS, new_row_version, stamp_audit_fields,
)
from models.dtos import DtoBase, ConcurrentDtoBase, ChangeTrackingDtoBase, PagedCollection
from models.requests import (
    GetListRequest, GetHistoryRequest, UpdateMultipleRequest,
    QueryTransform, identity, MIN_VALID_FROM, MAX_VALID_TO,
)

__all__ = [
    "EntityBase", "ConcurrentEntityBase", "ChangeTrackingEntityBase", "TemporalEntityBase",
    "AUDIT_COLUMNS", "SYSTEM_COLUMNS", "new_row_version", "stamp_audit_fields",
    "DtoBase", "ConcurrentDtoBase", "ChangeTrackingDtoBase", "PagedCollection",
    "GetListRequest", "GetHistoryRequest", "UpdateMultipleRequest",
    "QueryTransform", "identity", "MIN_VALID_FROM", "MAX_VALID_TO",
]
