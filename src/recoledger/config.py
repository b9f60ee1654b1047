"""Configuration models (YAML loaded, validated with Pydantic)."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import HeaderConfigError
from .fields import HEADER_KEYS, ORDER_ID, RecordKind


HeaderMap = Dict[str, str]


def require_order_id(headers: Optional[Mapping[str, str]], record_kind: RecordKind | str) -> None:
    """Raise ``HeaderConfigError`` unless the map names an orderId column."""
    kind = RecordKind.parse(record_kind)
    if not headers or not str(headers.get(ORDER_ID, "") or "").strip():
        raise HeaderConfigError(kind.value)


class PathsConfig(BaseModel):
    storage_root: str = Field("data", description="Root folder of the filesystem blob store")
    history_root: Optional[str] = Field(None, description="Root folder of the JSON document store")
    logs_dir: str = Field("logs", description="Folder receiving log files")


class LoggingConfig(BaseModel):
    level: str = Field("INFO", description="Root level for recoledger loggers")
    file_name: str = Field("ingestion_log.txt", description="Log file written under paths.logs_dir")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class IngestionConfig(BaseModel):
    allowed_extensions: List[str] = Field(default_factory=lambda: [".csv", ".xlsx", ".xls"])
    max_file_size_mb: float = Field(50, gt=0, description="Upload size limit")
    archive_uploads: bool = Field(True, description="Keep a copy of every uploaded file")


class PlatformConfig(BaseModel):
    """A selling platform with one header map per record kind."""

    id: str
    name: str = ""
    sales_headers: HeaderMap = Field(default_factory=dict)
    payment_headers: HeaderMap = Field(default_factory=dict)
    gst_headers: HeaderMap = Field(default_factory=dict)
    refund_headers: HeaderMap = Field(default_factory=dict)

    @field_validator("sales_headers", "payment_headers", "gst_headers", "refund_headers", mode="before")
    @classmethod
    def validate_header_keys(cls, v):
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("Header map must be a mapping of field name to column header")
        unknown = sorted(str(k) for k in v if k not in HEADER_KEYS)
        if unknown:
            raise ValueError(f"Unknown logical field(s) in header map: {unknown}")
        return {str(k): "" if h is None else str(h) for k, h in v.items()}

    def headers_for(self, record_kind: RecordKind | str) -> HeaderMap:
        kind = RecordKind.parse(record_kind)
        return {
            RecordKind.SALES: self.sales_headers,
            RecordKind.PAYMENT: self.payment_headers,
            RecordKind.TAX: self.gst_headers,
            RecordKind.REFUND: self.refund_headers,
        }[kind]


class TenantConfig(BaseModel):
    id: str
    name: str = ""
    platforms: List[PlatformConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_platforms(self):
        ids = [p.id for p in self.platforms]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"Tenant {self.id} has duplicate platform ids: {dupes}")
        return self


class AppConfig(BaseModel):
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    tenants: List[TenantConfig] = Field(default_factory=list)

    def platform(self, tenant_id: str, platform_id: str) -> PlatformConfig:
        for tenant in self.tenants:
            if tenant.id != tenant_id:
                continue
            for platform in tenant.platforms:
                if platform.id == platform_id:
                    return platform
        raise KeyError(f"Unknown platform {platform_id!r} for tenant {tenant_id!r}")

    def platform_pairs(self) -> List[Tuple[str, str]]:
        return [(t.id, p.id) for t in self.tenants for p in t.platforms]

    def as_logging_dict(self) -> dict:
        """Shape expected by ``logging_utils.get_logger``."""
        return {
            "paths": {"logs_dir": self.paths.logs_dir},
            "logging": {"level": self.logging.level, "file_name": self.logging.file_name},
        }


def load_config(path: str | Path) -> AppConfig:
    """Load and validate a YAML configuration file."""
    with open(path, "r", encoding="utf-8") as stream:
        raw = yaml.safe_load(stream) or {}
    return AppConfig(**raw)
