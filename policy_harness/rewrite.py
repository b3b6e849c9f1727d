from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from .image_ref import ImageRef
from .settings import Settings

logger = logging.getLogger(__name__)


def rewrite_image(image: str, repos: Mapping[str, str]) -> str:
    """Normalise ``image`` and swap its registry prefix for a mirror.

    The first mapping entry whose source is a prefix of the normalised image
    wins. Without a match the normalised form is returned.
    """
    normalised = str(ImageRef.parse(image))
    for src, dest in repos.items():
        if normalised.startswith(src):
            return normalised.replace(src, dest)
    return normalised


def _rewrite_containers(containers: List[Dict[str, Any]], repos: Mapping[str, str]) -> List[Dict[str, Any]]:
    out = []
    for container in containers:
        ctr = dict(container)
        if ctr.get("image"):
            ctr["image"] = rewrite_image(ctr["image"], repos)
        out.append(ctr)
    return out


def rewrite_pod(pod: Mapping[str, Any], settings: Settings) -> Dict[str, Any]:
    """Return a copy of ``pod`` with container and init container images rewritten."""
    new_pod = copy.deepcopy(dict(pod))
    spec = new_pod.get("spec") or {}
    spec["containers"] = _rewrite_containers(spec.get("containers") or [], settings.repos)
    if spec.get("initContainers") is not None:
        spec["initContainers"] = _rewrite_containers(spec["initContainers"], settings.repos)
    new_pod["spec"] = spec
    return new_pod


def _is_pod(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    if obj.get("kind", "Pod") != "Pod":
        return False
    spec = obj.get("spec")
    return isinstance(spec, dict) and isinstance(spec.get("containers"), list)


def preview_request(request_doc: Mapping[str, Any], settings: Settings) -> Optional[Dict[str, Any]]:
    """Preview the Pod a request fixture would carry after registry rewriting.

    Returns None when the fixture's object is not a Pod.
    """
    # AdmissionReview documents wrap the request; bare AdmissionRequests do not.
    request = request_doc.get("request") or request_doc
    obj = request.get("object") if isinstance(request, dict) else None
    if not _is_pod(obj):
        logger.warning("fixture object is not a Pod; nothing to rewrite")
        return None
    return rewrite_pod(obj, settings)
