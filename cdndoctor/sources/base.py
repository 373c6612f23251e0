"""Config Source interface: read-only access to the CDN control plane.

Every method is fallible and latency-bearing. Implementations raise
InvalidIdentifierError, PermissionDeniedError or TransientSourceError and
never mutate anything.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from cdndoctor.models import OriginConfig, ProbeOutcome


class ConfigSource(ABC):

    @abstractmethod
    def get_distribution(self, distribution_id: str) -> dict:
        """Raw distribution record (GetDistribution response shape)."""

    @abstractmethod
    def get_origin_detail(self, origin: OriginConfig) -> dict:
        """Raw origin sub-record: bucket policy, public-access block, keys, health."""

    @abstractmethod
    def get_security_detail(self, web_acl_id: str) -> dict:
        """Raw web ACL summary for the WAF associated with the distribution."""

    def get_logging_detail(self, distribution_id: str) -> dict:
        """Raw monitoring subscription / realtime logging record."""
        return {}

    def probe_reachability(self, origin: OriginConfig, timeout: float) -> ProbeOutcome:
        """Only called when active validation is enabled."""
        raise NotImplementedError
