"""Config Source backed by a static document (JSON or YAML fixture file).

Document layout::

    distributions: {<id>: <GetDistribution response>}
    origins:       {<origin id or domain>: <origin detail>}
    security:      {<web acl id>: <web acl summary>}
    logging:       {<distribution id>: <logging detail>}
    probes:        {<origin id or domain>: reachable | unreachable | timeout}

Any record may be replaced by ``{"error": "permission-denied"}`` (or
``"transient"`` / ``"not-found"``) to reproduce control-plane failures.
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

from cdndoctor.errors import (
    InvalidIdentifierError, PermissionDeniedError, TransientSourceError, ValidationProbeError,
)
from cdndoctor.models import OriginConfig, ProbeOutcome
from cdndoctor.sources.base import ConfigSource

logger = logging.getLogger(__name__)


def load_document(path: str | Path) -> dict:
    """Load a fixture document. YAML is a superset of JSON, so both parse."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: fixture document must be a mapping")
    return data


class FixtureConfigSource(ConfigSource):

    def __init__(self, document: dict) -> None:
        self.document = document
        self.calls: list[tuple[str, str]] = []

    @classmethod
    def from_file(cls, path: str | Path) -> FixtureConfigSource:
        return cls(load_document(path))

    def get_distribution(self, distribution_id: str) -> dict:
        self.calls.append(("get_distribution", distribution_id))
        record = self.document.get("distributions", {}).get(distribution_id)
        if record is None:
            raise InvalidIdentifierError(distribution_id)
        return _unwrap(record, distribution_id)

    def get_origin_detail(self, origin: OriginConfig) -> dict:
        self.calls.append(("get_origin_detail", origin.origin_id))
        origins = self.document.get("origins", {})
        record = origins.get(origin.origin_id, origins.get(origin.domain))
        if record is None:
            return {}
        return _unwrap(record, origin.origin_id)

    def get_security_detail(self, web_acl_id: str) -> dict:
        self.calls.append(("get_security_detail", web_acl_id))
        record = self.document.get("security", {}).get(web_acl_id)
        if record is None:
            return {}
        return _unwrap(record, web_acl_id)

    def get_logging_detail(self, distribution_id: str) -> dict:
        self.calls.append(("get_logging_detail", distribution_id))
        record = self.document.get("logging", {}).get(distribution_id)
        if record is None:
            return {}
        return _unwrap(record, distribution_id)

    def probe_reachability(self, origin: OriginConfig, timeout: float) -> ProbeOutcome:
        self.calls.append(("probe_reachability", origin.origin_id))
        probes = self.document.get("probes", {})
        value = probes.get(origin.origin_id, probes.get(origin.domain))
        if value is None:
            raise ValidationProbeError(f"no probe result recorded for {origin.origin_id}")
        try:
            return ProbeOutcome(value)
        except ValueError:
            raise ValidationProbeError(f"unknown probe result {value!r}") from None


def _unwrap(record, subject: str) -> dict:
    if isinstance(record, dict) and "error" in record and len(record) == 1:
        kind = record["error"]
        if kind == "permission-denied":
            raise PermissionDeniedError(f"access denied reading {subject}")
        if kind == "transient":
            raise TransientSourceError(f"transient failure reading {subject}")
        if kind == "not-found":
            raise InvalidIdentifierError(subject)
        logger.warning("Unknown fixture error kind %r for %s", kind, subject)
    return record
