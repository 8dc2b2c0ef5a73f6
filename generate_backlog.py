import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

from agent_backlog import AgentBacklog, GenerationError

# =====================================================
# Async execution
# =====================================================

async def run_generation(requirement_path: Path, kb_path: Path | None, output_dir: Path) -> Path | None:
    if not requirement_path.exists():
        print(f"❌ Fichier introuvable : {requirement_path}")
        return None

    print(f"📥 Chargement de l'exigence : {requirement_path}")
    requirement_text = requirement_path.read_text(encoding="utf-8")

    knowledge_base = ""
    if kb_path is not None:
        if not kb_path.exists():
            print(f"❌ Base de connaissances introuvable : {kb_path}")
            return None
        print(f"📚 Base de connaissances : {kb_path}")
        knowledge_base = kb_path.read_text(encoding="utf-8")

    print("🤖 Initialisation Agent Backlog...")
    agent = AgentBacklog()

    print("🚀 Génération du backlog Agile...")
    try:
        backlog = await agent.generate(requirement_text, knowledge_base)
    except (GenerationError, ValueError) as e:
        print(f"❌ Génération impossible : {e}")
        return None

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{requirement_path.stem}_backlog.json"
    output_path.write_text(backlog.model_dump_json(indent=2), encoding="utf-8")

    print("✅ Backlog généré avec succès !")
    print(f"📁 Fichier sauvegardé : {output_path}")

    counts = backlog.counts()
    print("\n📊 Résumé :")
    print(f"Nombre d'Epics : {counts['epics']}")
    print(f"Nombre de Features : {counts['features']}")
    print(f"Nombre de User Stories : {counts['user_stories']}")
    return output_path


# =====================================================
# CLI Entry
# =====================================================
def main():
    load_dotenv()
    parser = argparse.ArgumentParser(
        description="Exigence métier (texte) -> backlog Agile JSON (Epics / Features / User Stories)"
    )
    parser.add_argument("--file", required=True, help="Fichier texte contenant l'exigence métier")
    parser.add_argument("--kb", help="Fichier texte de base de connaissances (optionnel)")
    parser.add_argument("--output-dir", default="results/backlog")

    args = parser.parse_args()

    output = asyncio.run(run_generation(
        Path(args.file),
        Path(args.kb) if args.kb else None,
        Path(args.output_dir),
    ))
    if output is None:
        sys.exit(1)


if __name__ == "__main__":
    main()
