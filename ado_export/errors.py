"""
Taxonomie d'erreurs de l'export Azure DevOps.

- NetworkError : l'hôte est injoignable (réseau, DNS, proxy, CORS, timeout).
- ApiError et ses sous-classes : l'API a répondu avec un statut non 2xx.
Les messages sont destinés à être affichés tels quels à l'utilisateur.
"""
from typing import Optional


NETWORK_HINT = (
    "Une erreur réseau empêche la connexion à Azure DevOps.\n\n"
    "Causes possibles :\n"
    "1. URL d'organisation incorrecte (ex : https://dev.azure.com/mon-organisation).\n"
    "2. Problème réseau / VPN / proxy empêchant l'accès à dev.azure.com.\n"
    "3. Politique CORS de l'organisation (Organization Settings > Policies > CORS) "
    "si l'appel part d'un navigateur."
)


class AdoError(Exception):
    """Erreur de base de l'export Azure DevOps."""


class NetworkError(AdoError):
    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        detail = f"\n\nDétail : {cause}" if cause else ""
        super().__init__(f"{NETWORK_HINT}\n\nURL : {url}{detail}")


class ApiError(AdoError):
    """L'API Azure DevOps a renvoyé un statut non 2xx."""

    def __init__(self, message: str, status: int, details: str):
        self.status = status
        self.details = details
        super().__init__(message)


class AdoConnectionError(ApiError):
    def __init__(self, status: int, details: str):
        super().__init__(
            f"Échec du test de connexion (Statut : {status}) : {details}. "
            "Vérifie le PAT et le nom du projet.",
            status,
            details,
        )


class CreateError(ApiError):
    def __init__(self, kind: str, status: int, details: str):
        self.kind = kind
        super().__init__(
            f"Impossible de créer le work item {kind} dans Azure DevOps (Statut : {status}) : {details}",
            status,
            details,
        )


class LinkError(ApiError):
    def __init__(self, status: int, details: str, url: str = ""):
        self.url = url
        target = f" {url}" if url else ""
        super().__init__(
            f"Impossible de lier le work item{target} (Statut : {status}) : {details}",
            status,
            details,
        )
