"""Document classification and review artifacts."""

from discovery_orchestrator.review.classifiers import (
    ClassifierResolution,
    ClassifierSet,
    build_classifiers,
    resolve_classifiers,
)
from discovery_orchestrator.review.gateway import DecodeResult, GatewayResult, ModelGateway
from discovery_orchestrator.review.schemas import (
    DiscoveryRequest,
    HotDocumentVerdict,
    PrivilegeVerdict,
    ResponsivenessVerdict,
    ReviewConfig,
)

__all__ = [
    "ClassifierResolution",
    "ClassifierSet",
    "DecodeResult",
    "DiscoveryRequest",
    "GatewayResult",
    "HotDocumentVerdict",
    "ModelGateway",
    "PrivilegeVerdict",
    "ResponsivenessVerdict",
    "ReviewConfig",
    "build_classifiers",
    "resolve_classifiers",
]
