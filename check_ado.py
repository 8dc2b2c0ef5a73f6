"""
Script de vérification pour diagnostiquer la connexion à Azure DevOps.
"""
import asyncio
import sys

from pydantic import ValidationError

from ado_export import AdoClient, AdoConfig, AdoConnectionError, NetworkError


async def check_ado(config: AdoConfig) -> bool:
    """Vérifie que l'organisation, le projet et le PAT sont valides."""
    print("🔍 Vérification de la configuration Azure DevOps...\n")
    print(f"   Organisation : {config.org_url}")
    print(f"   Projet : {config.project}\n")

    print("1️⃣ Test de connexion au projet...")
    try:
        name = await AdoClient().test_connection(config)
    except NetworkError as e:
        print(f"   ❌ {e}")
        return False
    except AdoConnectionError as e:
        print(f"   ❌ {e}")
        if e.status in (401, 203):
            print("   💡 Le PAT est invalide ou expiré (scope requis : Work Items Read & Write)")
        elif e.status == 404:
            print("   💡 Le projet n'existe pas dans cette organisation")
        return False

    print(f'   ✅ Connecté au projet : "{name}"\n')
    return True


if __name__ == "__main__":
    try:
        config = AdoConfig.from_env()
    except ValidationError:
        print("❌ Définis ADO_ORG_URL, ADO_PROJECT et ADO_PAT (fichier .env ou environnement)")
        sys.exit(1)

    if asyncio.run(check_ado(config)):
        print("✅ Tout semble correct ! Tu peux lancer `python export_backlog.py --file ...`")
    else:
        print("\n❌ Des problèmes ont été détectés. Corrige-les avant de continuer.")
        sys.exit(1)
