import os
from typing import List, Dict, Any

import httpx
from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: str
    content: str


class LLMClient:
    """
    Client générique pour la génération du backlog :
    - Ollama local (/api/chat) : provider="ollama" (par défaut)
    - Mistral AI API (cloud) : provider="mistral"
    - API compatible OpenAI : provider="openai"

    Toutes les réponses sont normalisées au format OpenAI :
    {"choices": [{"message": {"content": "..."}}]}
    """

    def __init__(
        self,
        api_base: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        provider: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider = (provider or os.getenv("LLM_PROVIDER", "ollama")).strip().lower()
        self.api_key = api_key or os.getenv("LLM_API_KEY", "")
        self.model = model or os.getenv("LLM_MODEL", "mistral:7b-instruct-q4_K_M")
        self.transport = transport

        if timeout is None:
            timeout_env = os.getenv("LLM_TIMEOUT")
            if timeout_env:
                self.timeout = float(timeout_env)
            elif self.provider == "ollama":
                self.timeout = 1800.0  # génération locale lente sur les gros cahiers des charges
            else:
                self.timeout = 120.0
        else:
            self.timeout = timeout

        if self.provider == "ollama":
            self.api_base = (api_base or os.getenv("LLM_API_BASE", "http://localhost:11434")).rstrip("/")
        elif self.provider == "mistral":
            self.api_base = "https://api.mistral.ai"
            if not self.api_key:
                raise ValueError(
                    "LLM_API_KEY est requis pour Mistral AI. "
                    "Obtenez une clé sur https://console.mistral.ai/"
                )
        elif self.provider == "openai":
            self.api_base = (api_base or os.getenv("LLM_API_BASE", "")).rstrip("/")
            if not self.api_base:
                raise ValueError(
                    "LLM_API_BASE n'est pas défini. "
                    "Définissez la variable d'environnement LLM_API_BASE."
                )
        else:
            raise ValueError(
                f"Provider LLM inconnu : '{self.provider}' (attendu : ollama | mistral | openai)"
            )

    async def acomplete(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.4,
        max_tokens: int = 4096,
    ) -> Dict[str, Any]:
        """
        Appel asynchrone au provider configuré.
        Lève httpx.HTTPError (ou ConnectionError pour Ollama) en cas d'échec.
        """
        if self.provider == "ollama":
            return await self._acomplete_ollama(messages, temperature, max_tokens)
        return await self._acomplete_chat_completions(messages, temperature, max_tokens)

    def _client(self, timeout) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    async def _acomplete_chat_completions(
        self,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        """
        Mistral AI et APIs compatibles OpenAI : POST {base}/v1/chat/completions
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        url = f"{self.api_base}/v1/chat/completions"
        async with self._client(self.timeout) as client:
            resp = await client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            return resp.json()

    async def _acomplete_ollama(
        self,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        """
        Ollama: POST {base}/api/chat
        https://github.com/ollama/ollama/blob/main/docs/api.md
        """
        num_predict = int(os.getenv("OLLAMA_NUM_PREDICT", str(max_tokens)))
        num_ctx_env = os.getenv("OLLAMA_NUM_CTX")

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.model_dump() for m in messages],
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": num_predict,
            },
        }
        if num_ctx_env:
            payload["options"]["num_ctx"] = int(num_ctx_env)

        url = f"{self.api_base}/api/chat"
        timeout = httpx.Timeout(self.timeout, connect=10.0)

        try:
            async with self._client(timeout) as client:
                print(f"🔄 Envoi de la requête à Ollama (modèle: {self.model})...")
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.ConnectError as e:
            raise ConnectionError(
                f"Impossible de se connecter à Ollama à {self.api_base}.\n"
                f"Vérifie que Ollama est lancé : `ollama list`"
            ) from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ValueError(
                    f"Modèle '{self.model}' non trouvé dans Ollama.\n"
                    f"Télécharge-le avec : `ollama pull {self.model}`"
                ) from e
            raise

        content = (data.get("message") or {}).get("content", "")
        print("✅ Réponse reçue d'Ollama")
        return {"choices": [{"message": {"content": content}}], "provider_raw": data}
