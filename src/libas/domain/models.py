from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

Dataset = dict[str, Any]

ROLES = ("admin", "staff")

# Provenance is stamped by the record service and reasserted on every update.
PROVENANCE_FIELDS = ("id", "timestamp", "addedBy", "originalDate", "lastModified", "modifiedBy")
PATCHABLE_FIELDS = ("name", "quantity", "group", "purchasePrice", "sellingPrice", "date", "description")


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _extra(raw: Mapping[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {k: v for k, v in raw.items() if k not in known}


@dataclass(frozen=True)
class StockEntry:
    id: str
    name: str
    quantity: Any
    group: str
    date: str
    added_by: str
    timestamp: str
    purchase_price: Any = None
    selling_price: Any = None
    description: Optional[str] = None
    last_modified: Optional[str] = None
    modified_by: Optional[str] = None
    original_date: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    _JSON_NAMES = {
        "id": "id",
        "name": "name",
        "quantity": "quantity",
        "group": "group",
        "date": "date",
        "added_by": "addedBy",
        "timestamp": "timestamp",
        "purchase_price": "purchasePrice",
        "selling_price": "sellingPrice",
        "description": "description",
        "last_modified": "lastModified",
        "modified_by": "modifiedBy",
        "original_date": "originalDate",
    }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "StockEntry":
        names = cls._JSON_NAMES
        return cls(
            id=str(raw.get("id", "")),
            name=raw.get("name") or "",
            quantity=raw.get("quantity"),
            group=raw.get("group") or "",
            date=raw.get("date") or "",
            added_by=raw.get("addedBy") or "",
            timestamp=raw.get("timestamp") or "",
            purchase_price=raw.get("purchasePrice"),
            selling_price=raw.get("sellingPrice"),
            description=raw.get("description"),
            last_modified=raw.get("lastModified"),
            modified_by=raw.get("modifiedBy"),
            original_date=raw.get("originalDate"),
            extra=_extra(raw, tuple(names.values())),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        for attr, key in self._JSON_NAMES.items():
            value = getattr(self, attr)
            if value is None and attr not in ("quantity",):
                continue
            out[key] = value
        return out


@dataclass(frozen=True)
class StockEntryPatch:
    """Editable subset of a stock entry.

    Fields left as ``UNSET`` are not touched. Provenance (id, timestamp,
    addedBy, originalDate, lastModified, modifiedBy) has no slot here.
    """

    name: Any = UNSET
    quantity: Any = UNSET
    group: Any = UNSET
    purchase_price: Any = UNSET
    selling_price: Any = UNSET
    date: Any = UNSET
    description: Any = UNSET
    extra: Mapping[str, Any] = field(default_factory=dict)

    _JSON_NAMES = {
        "name": "name",
        "quantity": "quantity",
        "group": "group",
        "purchase_price": "purchasePrice",
        "selling_price": "sellingPrice",
        "date": "date",
        "description": "description",
    }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StockEntryPatch":
        by_json = {v: k for k, v in cls._JSON_NAMES.items()}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in PROVENANCE_FIELDS:
                continue
            if key in by_json:
                kwargs[by_json[key]] = value
            else:
                extra[key] = value
        return cls(extra=extra, **kwargs)

    @staticmethod
    def rejected_keys(data: Mapping[str, Any]) -> list[str]:
        return [k for k in data if k in PROVENANCE_FIELDS]

    def changes(self) -> dict[str, Any]:
        out = {k: v for k, v in self.extra.items() if k not in PROVENANCE_FIELDS}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is UNSET:
                continue
            out[self._JSON_NAMES[f.name]] = value
        return out


@dataclass(frozen=True)
class Item:
    id: str
    created_date: str
    added_by: str
    details: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Item":
        return cls(
            id=str(raw.get("id", "")),
            created_date=raw.get("createdDate") or "",
            added_by=raw.get("addedBy") or "",
            details=_extra(raw, ("id", "createdDate", "addedBy")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {**self.details, "id": self.id, "createdDate": self.created_date, "addedBy": self.added_by}


@dataclass(frozen=True)
class Bill:
    id: str
    upload_date: str
    uploaded_by: str
    date: str
    details: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Bill":
        return cls(
            id=str(raw.get("id", "")),
            upload_date=raw.get("uploadDate") or "",
            uploaded_by=raw.get("uploadedBy") or "",
            date=raw.get("date") or "",
            details=_extra(raw, ("id", "uploadDate", "uploadedBy", "date")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.details,
            "id": self.id,
            "uploadDate": self.upload_date,
            "uploadedBy": self.uploaded_by,
            "date": self.date,
        }


@dataclass(frozen=True)
class User:
    username: str
    role: str
    full_name: str = ""
    password: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "User":
        return cls(
            username=str(raw.get("username", "")),
            role=str(raw.get("role", "")),
            full_name=str(raw.get("fullName", "")),
            password=str(raw.get("password", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"username": self.username, "password": self.password, "role": self.role, "fullName": self.full_name}

    def session_dict(self) -> dict[str, Any]:
        return {"username": self.username, "role": self.role, "fullName": self.full_name}


@dataclass(frozen=True)
class Stats:
    total_products: int
    staff_entries: int
    admin_entries: int
    total_value: float
    total_bills: int
    last_updated: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "staffEntries": self.staff_entries,
            "adminEntries": self.admin_entries,
            "totalValue": self.total_value,
            "totalBills": self.total_bills,
            "lastUpdated": self.last_updated,
        }
