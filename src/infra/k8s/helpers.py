from __future__ import annotations

from cachetools.func import lru_cache  # type: ignore

from src.infra.k8s.controller import KubernetesController


@lru_cache(maxsize=1)
def get_k8s_controller() -> KubernetesController:
    """Get the shared KubernetesController instance.

    Returns:
        An instance of KubernetesController
    """
    from src.infra.k8s.kubectl_controller import KubectlController

    return KubectlController()
