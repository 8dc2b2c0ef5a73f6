from typing import Callable, Optional

from agent_backlog.schemas import BacklogGraph, Epic, Feature, UserStory

from .client import AdoClient
from .schemas import AdoConfig, ExportReport, RemoteWorkItem, StoryWorkItemMap, WorkItemDetails


ProgressCallback = Callable[[str], None]


def safe_progress(on_progress: Optional[ProgressCallback]) -> ProgressCallback:
    """Enveloppe le callback de progression : une erreur du callback n'interrompt jamais l'export."""

    def notify(message: str) -> None:
        if on_progress is None:
            return
        try:
            on_progress(message)
        except Exception as e:
            print(f"⚠️  Erreur dans le callback de progression ignorée : {e}")

    return notify


class HierarchyExporter:
    """
    Crée la hiérarchie Epic → Feature → User Story dans Azure DevOps,
    parent avant enfant, un appel à la fois.

    Toute erreur interrompt immédiatement l'export et remonte à l'appelant :
    une hiérarchie incomplète mais signalée vaut mieux qu'une hiérarchie cassée.
    """

    def __init__(self, client: AdoClient, config: AdoConfig, on_progress: ProgressCallback):
        self.client = client
        self.config = config
        self.notify = on_progress

    async def run(self, backlog: BacklogGraph, story_map: StoryWorkItemMap, report: ExportReport) -> None:
        for epic in backlog.epics:
            await self._export_epic(epic, story_map, report)

    async def _export_epic(self, epic: Epic, story_map: StoryWorkItemMap, report: ExportReport) -> None:
        self.notify(f'Création de l\'Epic : "{epic.epic}"')
        epic_item = await self.client.create_work_item(
            self.config, "Epic", epic.epic, WorkItemDetails(description=epic.epic_description)
        )
        report.epics += 1

        for feature in epic.features:
            await self._export_feature(feature, epic_item, story_map, report)

    async def _export_feature(
        self,
        feature: Feature,
        epic_item: RemoteWorkItem,
        story_map: StoryWorkItemMap,
        report: ExportReport,
    ) -> None:
        self.notify(f'Création de la Feature : "{feature.feature}"')
        feature_item = await self.client.create_work_item(
            self.config, "Feature", feature.feature, WorkItemDetails(description=feature.feature_description)
        )
        report.features += 1

        self.notify(f'Liaison de la Feature "{feature.feature}" à l\'Epic')
        await self.client.link_parent(self.config, feature_item.url, epic_item.url)
        report.parent_links += 1

        for story in feature.user_stories:
            await self._export_story(story, feature_item, story_map, report)

    async def _export_story(
        self,
        story: UserStory,
        feature_item: RemoteWorkItem,
        story_map: StoryWorkItemMap,
        report: ExportReport,
    ) -> None:
        self.notify(f'Création de la User Story : "{story.id}"')
        story_item = await self.client.create_work_item(
            self.config,
            "User Story",
            story.story,
            WorkItemDetails(
                acceptance_criteria=story.acceptance_criteria,
                business_value=story.business_value,
                risk_impact=story.risk_impact,
            ),
        )
        report.user_stories += 1

        self.notify(f'Liaison de la Story "{story.id}" à la Feature')
        await self.client.link_parent(self.config, story_item.url, feature_item.url)
        report.parent_links += 1

        story_map.register(story.id, story_item)
