import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from agent_backlog import BacklogGraph
from ado_export import AdoConfig, AdoError, export_to_ado


def print_progress(message: str) -> None:
    print(f"   ⏳ {message}")


async def run_export(backlog_path: Path, config: AdoConfig, max_concurrency: int | None) -> bool:
    if not backlog_path.exists():
        print(f"❌ Fichier introuvable : {backlog_path}")
        return False

    try:
        with open(backlog_path, "r", encoding="utf-8") as f:
            backlog = BacklogGraph.model_validate(json.load(f))
    except (json.JSONDecodeError, ValidationError) as e:
        print(f"⚠️ Backlog invalide {backlog_path.name} : {e}")
        return False

    counts = backlog.counts()
    print(f"📥 Backlog chargé : {counts['epics']} Epics, {counts['features']} Features, "
          f"{counts['user_stories']} User Stories")
    print(f"🚀 Export vers {config.org_url} / {config.project}")

    try:
        report = await export_to_ado(config, backlog, print_progress, max_concurrency=max_concurrency)
    except AdoError as e:
        print(f"\n❌ Échec de l'export :\n{e}")
        return False

    print(f"\n✅ Export réussi vers le projet : {config.project}")
    print(f"   Work items créés : {report.created}")
    print(f"   Liens parent : {report.parent_links}")
    print(f"   Liens de dépendance : {report.linked_dependencies}/{report.dependency_links}")
    if report.failed_links:
        print(f"   ⚠️  {len(report.failed_links)} lien(s) de dépendance en échec (voir ci-dessus)")
    return True


def main():
    parser = argparse.ArgumentParser(description="Backlog JSON -> work items Azure DevOps")
    parser.add_argument("--file", required=True, help="Backlog JSON (ex : results/backlog/exigence_backlog.json)")
    parser.add_argument("--org-url", help="Par défaut : ADO_ORG_URL")
    parser.add_argument("--project", help="Par défaut : ADO_PROJECT")
    parser.add_argument("--pat", help="Par défaut : ADO_PAT")
    parser.add_argument("--max-concurrency", type=int, help="Nombre max de liens de dépendance simultanés")

    args = parser.parse_args()

    try:
        config = AdoConfig.from_env(org_url=args.org_url, project=args.project, pat=args.pat)
    except ValidationError as e:
        print(f"❌ Configuration Azure DevOps incomplète (ADO_ORG_URL, ADO_PROJECT, ADO_PAT) : {e}")
        sys.exit(1)

    if not asyncio.run(run_export(Path(args.file), config, args.max_concurrency)):
        sys.exit(1)


if __name__ == "__main__":
    main()
