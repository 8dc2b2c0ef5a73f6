import json
import re
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .llm_client import LLMClient, ChatMessage
from .prompts import BACKLOG_SYSTEM_PROMPT, NO_KNOWLEDGE_BASE
from .schemas import BacklogGraph


class GenerationError(Exception):
    """Échec de la génération du backlog (transport, JSON invalide, schéma non respecté)."""


class AgentBacklog:
    """
    Agent Backlog : transforme une exigence métier en texte libre
    (+ base de connaissances optionnelle) en backlog Epics → Features → User Stories.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm_client = llm_client or LLMClient()

    # --------------------------------------------------
    # Point d'entrée principal
    # --------------------------------------------------
    async def generate(self, requirement_text: str, knowledge_base: str = "") -> BacklogGraph:
        if not requirement_text or not requirement_text.strip():
            raise ValueError("L'exigence métier est vide.")

        messages = [
            ChatMessage(role="system", content=BACKLOG_SYSTEM_PROMPT),
            ChatMessage(role="user", content=self._build_user_prompt(requirement_text, knowledge_base)),
        ]

        try:
            response = await self.llm_client.acomplete(messages, max_tokens=8000)
        except (httpx.HTTPError, ConnectionError, TimeoutError, ValueError) as e:
            raise GenerationError(f"Échec de l'appel au modèle de génération : {e}") from e

        try:
            raw_content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("Réponse du modèle sans contenu exploitable.") from e

        return self._parse_response(raw_content)

    # --------------------------------------------------
    # Construction du prompt utilisateur
    # --------------------------------------------------
    @staticmethod
    def _build_user_prompt(requirement_text: str, knowledge_base: str) -> str:
        return (
            "Exigence métier :\n---\n"
            f"{requirement_text.strip()}\n---\n\n"
            "Base de connaissances / contexte additionnel :\n---\n"
            f"{knowledge_base.strip() or NO_KNOWLEDGE_BASE}\n---"
        )

    # --------------------------------------------------
    # Parsing + validation
    # --------------------------------------------------
    def _parse_response(self, raw_content: str) -> BacklogGraph:
        cleaned = self._clean_json(raw_content)

        try:
            data: Any = json.loads(cleaned)
        except json.JSONDecodeError as e:
            snippet = cleaned[max(0, e.pos - 80): e.pos + 80]
            raise GenerationError(
                f"JSON invalide renvoyé par le modèle (ligne {e.lineno}, colonne {e.colno}) : ...{snippet!r}..."
            ) from e

        # Certains modèles enveloppent le tableau : {"epics": [...]}
        if isinstance(data, dict):
            data = data.get("epics", data.get("backlog"))
        if not isinstance(data, list):
            raise GenerationError("Le modèle n'a pas renvoyé de tableau d'epics.")

        try:
            backlog = BacklogGraph.model_validate(data)
        except ValidationError as e:
            raise GenerationError(f"Backlog non conforme au schéma : {e}") from e

        if not len(backlog):
            raise GenerationError("Le modèle a renvoyé un backlog vide.")

        print("✅ Validation Pydantic réussie")
        return backlog

    @staticmethod
    def _clean_json(text: str) -> str:
        text = re.sub(r"```json\s*", "", text, flags=re.IGNORECASE)
        text = re.sub(r"```", "", text)
        text = re.sub(r"\r\n", "\n", text)
        # "user\_stories" → "user_stories"
        text = re.sub(r"\\_", "_", text)

        # Isole le bloc JSON principal (tableau ou objet, le premier qui s'ouvre)
        starts = [i for i in (text.find("["), text.find("{")) if i != -1]
        if starts:
            start = min(starts)
            closing = "]" if text[start] == "[" else "}"
            end = text.rfind(closing)
            if end > start:
                text = text[start: end + 1]

        return text.strip()
