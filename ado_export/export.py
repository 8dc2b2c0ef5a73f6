from typing import Iterable, Optional, Union

from agent_backlog.schemas import BacklogGraph, Epic

from .client import AdoClient
from .exporter import HierarchyExporter, ProgressCallback, safe_progress
from .linker import DependencyLinker
from .schemas import AdoConfig, ExportReport, StoryWorkItemMap


async def export_to_ado(
    config: AdoConfig,
    backlog: Union[BacklogGraph, Iterable[Epic]],
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[AdoClient] = None,
    max_concurrency: Optional[int] = None,
) -> ExportReport:
    """
    Exporte un backlog complet vers Azure DevOps en deux étapes :

    1. hiérarchie (séquentielle) : Epic, puis chaque Feature liée à son Epic,
       puis chaque Story liée à sa Feature. La première erreur est fatale.
    2. dépendances (parallèle) : lancée seulement quand toute la hiérarchie existe ;
       les échecs sont collectés dans le rapport, jamais levés.

    L'export n'est pas idempotent : le relancer sur le même backlog crée
    une seconde hiérarchie dans Azure DevOps.
    """
    if not isinstance(backlog, BacklogGraph):
        backlog = BacklogGraph(list(backlog))

    client = client or AdoClient()
    notify = safe_progress(on_progress)
    story_map = StoryWorkItemMap()
    report = ExportReport()

    notify("Démarrage de l'export vers Azure DevOps...")

    await HierarchyExporter(client, config, notify).run(backlog, story_map, report)

    notify("Tous les work items sont créés. Ajout des liens de dépendance...")

    linker = DependencyLinker(client, config, notify, max_concurrency=max_concurrency)
    report.dependency_links, report.failed_links = await linker.run(backlog, story_map)
    report.work_items = story_map.as_dict()

    notify("Export terminé !")
    return report
