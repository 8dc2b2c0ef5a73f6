import html
import json
import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .errors import AdoConnectionError, CreateError, LinkError, NetworkError
from .schemas import AdoConfig, RemoteWorkItem, WorkItemDetails


PROJECTS_API_VERSION = "7.1-preview.4"
WIT_API_VERSION = "7.1-preview.3"

WORK_ITEM_KINDS = ("Epic", "Feature", "User Story")

PARENT_LINK = "System.LinkTypes.Hierarchy-Reverse"
DEPENDENCY_LINK = "System.LinkTypes.Dependency"

JSON_PATCH = "application/json-patch+json"

UNEXPECTED_BODY = "Réponse inattendue d'Azure DevOps (PAT invalide ou expiré ?)"


def map_value_to_priority(value: Optional[str]) -> int:
    """Business value → champ Priority Azure DevOps (1 = plus haute)."""
    return {"High": 1, "Medium": 2, "Low": 3}.get(value or "", 2)


def build_patch_document(title: str, details: WorkItemDetails) -> List[Dict[str, Any]]:
    """
    Document JSON Patch de création, dans l'ordre :
    titre, description (+ risque), critères d'acceptation, priorité.
    Description, risque et critères sont échappés en HTML : un balisage fourni
    par l'appelant est affiché tel quel, pas interprété.
    """
    document: List[Dict[str, Any]] = [
        {"op": "add", "path": "/fields/System.Title", "value": title}
    ]

    description = ""
    if details.description:
        description += f"<p>{html.escape(details.description, quote=False)}</p>"
    if details.risk_impact:
        description += f"<br><b>Risk/Impact:</b> {html.escape(details.risk_impact, quote=False)}"
    if description:
        document.append({"op": "add", "path": "/fields/System.Description", "value": description})

    if details.acceptance_criteria is not None:
        items = "".join(f"<li>{html.escape(ac, quote=False)}</li>" for ac in details.acceptance_criteria)
        document.append({
            "op": "add",
            "path": "/fields/Microsoft.VSTS.Common.AcceptanceCriteria",
            "value": f"<ul>{items}</ul>",
        })

    if details.business_value:
        document.append({
            "op": "add",
            "path": "/fields/Microsoft.VSTS.Common.Priority",
            "value": map_value_to_priority(details.business_value),
        })

    return document


def build_relation_document(rel: str, target_url: str, comment: str) -> List[Dict[str, Any]]:
    return [{
        "op": "add",
        "path": "/relations/-",
        "value": {
            "rel": rel,
            "url": target_url,
            "attributes": {"comment": comment},
        },
    }]


def extract_error_details(resp: httpx.Response) -> str:
    """Message lisible tiré du corps d'erreur JSON, sinon statut + raison."""
    try:
        data = resp.json()
    except ValueError:
        return f"Request failed with status {resp.status_code} {resp.reason_phrase}"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return json.dumps(data, ensure_ascii=False)


class AdoClient:
    """
    Client REST Azure DevOps (work items), sans état :
    la configuration de connexion est passée à chaque appel.

    Les erreurs de transport deviennent NetworkError, les réponses non 2xx
    deviennent AdoConnectionError / CreateError / LinkError.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if timeout is None:
            timeout = float(os.getenv("ADO_TIMEOUT", "30"))
        self.timeout = timeout
        self.transport = transport

    # --------------------------------------------------
    # Opérations
    # --------------------------------------------------
    async def test_connection(self, config: AdoConfig) -> str:
        """Vérifie org + projet + PAT, retourne le nom affiché du projet."""
        url = f"{config.org_url}/_apis/projects/{quote(config.project, safe='')}"
        resp = await self._send(config, "GET", url, params={"api-version": PROJECTS_API_VERSION})
        if not resp.is_success:
            raise AdoConnectionError(resp.status_code, extract_error_details(resp))
        try:
            data = resp.json()
        except ValueError:
            # PAT invalide : Azure DevOps répond 203 avec la page de connexion HTML
            raise AdoConnectionError(resp.status_code, UNEXPECTED_BODY)
        if not isinstance(data, dict):
            raise AdoConnectionError(resp.status_code, UNEXPECTED_BODY)
        return data.get("name", config.project)

    async def create_work_item(
        self,
        config: AdoConfig,
        kind: str,
        title: str,
        details: Optional[WorkItemDetails] = None,
    ) -> RemoteWorkItem:
        if kind not in WORK_ITEM_KINDS:
            raise ValueError(f"Type de work item inconnu : {kind}")

        url = (
            f"{config.org_url}/{quote(config.project, safe='')}"
            f"/_apis/wit/workitems/${quote(kind, safe='')}"
        )
        document = build_patch_document(title, details or WorkItemDetails())
        resp = await self._send(
            config, "POST", url, params={"api-version": WIT_API_VERSION}, document=document
        )
        if not resp.is_success:
            raise CreateError(kind, resp.status_code, extract_error_details(resp))

        try:
            data = resp.json()
            return RemoteWorkItem(id=data["id"], url=data["url"])
        except (ValueError, KeyError, TypeError):
            raise CreateError(kind, resp.status_code, UNEXPECTED_BODY)

    async def link_parent(self, config: AdoConfig, child_url: str, parent_url: str) -> None:
        await self._add_relation(config, child_url, PARENT_LINK, parent_url, "Parent")

    async def link_dependency(self, config: AdoConfig, from_url: str, to_url: str) -> None:
        await self._add_relation(config, from_url, DEPENDENCY_LINK, to_url, "Depends on this story")

    # --------------------------------------------------
    # HTTP
    # --------------------------------------------------
    async def _add_relation(
        self, config: AdoConfig, item_url: str, rel: str, target_url: str, comment: str
    ) -> None:
        document = build_relation_document(rel, target_url, comment)
        resp = await self._send(
            config, "PATCH", item_url, params={"api-version": WIT_API_VERSION}, document=document
        )
        if not resp.is_success:
            raise LinkError(resp.status_code, extract_error_details(resp), url=item_url)

    async def _send(
        self,
        config: AdoConfig,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        document: Optional[List[Dict[str, Any]]] = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        content = None
        if document is not None:
            headers["Content-Type"] = JSON_PATCH
            content = json.dumps(document)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return await client.request(
                    method,
                    url,
                    params=params,
                    headers=headers,
                    content=content,
                    # Basic auth : utilisateur vide, PAT en mot de passe
                    auth=("", config.pat),
                )
        except httpx.TransportError as e:
            raise NetworkError(url, e) from e
