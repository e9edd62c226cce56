"""
Initialize the record store: write a fresh document with the seed roles and
provision the administrator account.
Run with: python -m scripts.init_db
"""

import asyncio
from clinica.config import get_settings
from clinica.services import build_services
from clinica.services.bootstrap import DEFAULT_ROLES, ensure_admin_user
from clinica.services.record_store import initialize_document


async def init():
    settings = get_settings()
    if await initialize_document(settings.data_path, DEFAULT_ROLES):
        print(f"Created record store at {settings.data_path}")
    else:
        print(f"Record store already exists at {settings.data_path}")
    services = build_services(settings)
    admin = await ensure_admin_user(services.store, settings.admin_username, settings.admin_password)
    if admin is None:
        print(f"Username '{settings.admin_username}' is taken by a non-admin user; no administrator provisioned")
    else:
        print(f"Administrator: {admin['usuario']} (id {admin['id']})")


if __name__ == "__main__":
    asyncio.run(init())
