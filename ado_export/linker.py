import asyncio
from typing import Awaitable, List, Optional, Tuple

from agent_backlog.schemas import BacklogGraph

from .client import AdoClient
from .exporter import ProgressCallback
from .schemas import AdoConfig, LinkFailure, StoryWorkItemMap


class DependencyLinker:
    """
    Crée les liens de dépendance entre stories, une fois toute la hiérarchie créée.

    Tous les liens partent en parallèle et on attend qu'ils soient tous terminés :
    un lien en échec n'empêche pas les autres et ne fait pas échouer l'export.
    """

    def __init__(
        self,
        client: AdoClient,
        config: AdoConfig,
        on_progress: ProgressCallback,
        max_concurrency: Optional[int] = None,
    ):
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency doit être >= 1")
        self.client = client
        self.config = config
        self.notify = on_progress
        self.max_concurrency = max_concurrency

    def plan(self, backlog: BacklogGraph, story_map: StoryWorkItemMap) -> List[Tuple[str, str]]:
        """Paires (story, dépendance) résolubles ; les ids inconnus sont ignorés."""
        pairs = []
        for story in backlog.iter_stories():
            if not story.dependencies or story.id not in story_map:
                continue
            for dep_id in story.dependencies:
                if dep_id in story_map:
                    pairs.append((story.id, dep_id))
        return pairs

    async def run(self, backlog: BacklogGraph, story_map: StoryWorkItemMap) -> Tuple[int, List[LinkFailure]]:
        pairs = self.plan(backlog, story_map)
        if not pairs:
            return 0, []

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        calls: List[Awaitable[None]] = []
        for story_id, dep_id in pairs:
            self.notify(f"Liaison {story_id} -> {dep_id}")
            calls.append(self._link(story_map, story_id, dep_id, semaphore))

        results = await asyncio.gather(*calls, return_exceptions=True)

        failures = [
            LinkFailure(story_id=story_id, depends_on=dep_id, error=result)
            for (story_id, dep_id), result in zip(pairs, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            print(f"⚠️  {len(failures)} lien(s) de dépendance n'ont pas pu être créés :")
            for failure in failures:
                print(f"   ❌ {failure}")

        return len(pairs), failures

    async def _link(
        self,
        story_map: StoryWorkItemMap,
        story_id: str,
        dep_id: str,
        semaphore: Optional[asyncio.Semaphore],
    ) -> None:
        from_url = story_map.get(story_id).url
        to_url = story_map.get(dep_id).url
        if semaphore is None:
            await self.client.link_dependency(self.config, from_url, to_url)
            return
        async with semaphore:
            await self.client.link_dependency(self.config, from_url, to_url)
