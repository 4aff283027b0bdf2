import asyncio
import sys

from momente.core.config import settings
from momente.core.dependencies import get_notion_client
from momente.services.notion import NotionAPIError, database_title


async def check_notion() -> int:
    """Print the databases the integration can see and the event schema."""
    if not settings.NOTION_INTEGRATION_SECRET:
        raise RuntimeError(
            "NOTION_INTEGRATION_SECRET is not defined. Please add it to your environment variables."
        )
    if not settings.NOTION_PAGE_URL:
        raise RuntimeError(
            "NOTION_PAGE_URL is not defined. Please add it to your environment variables."
        )

    notion = get_notion_client()
    databases = await notion.search_databases()
    print(f"Found {len(databases)} accessible databases:")
    for database in databases:
        print(f"  - {database_title(database) or 'Untitled'} ({database['id']})")

    target = await notion.find_database(
        settings.NOTION_DATABASE_NAME, settings.notion_page_id
    )
    if target is None:
        print(f"\n{settings.NOTION_DATABASE_NAME} database not found.")
        return 1

    schema = await notion.retrieve_database(target["id"])
    print(f"\n{database_title(schema)} properties:")
    for name, prop in schema.get("properties", {}).items():
        print(f"  {name}: {prop.get('type')}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(check_notion()))
    except (RuntimeError, NotionAPIError) as exc:
        print(f"Check failed: {exc}", file=sys.stderr)
        sys.exit(1)
