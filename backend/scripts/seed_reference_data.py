"""
参考数据导入脚本

写入情绪词表、游戏目录、种子用户，然后打印图谱数据量。
"""
import asyncio
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from playmood.core import database
from playmood.core.config import settings
from playmood.core.startup_checks import validate_settings
from playmood.services.reference_data import ensure_seed_users, load_reference_data


async def main():
    logging.basicConfig(level=settings.LOG_LEVEL)
    validate_settings(settings)

    await database.init_db()
    try:
        store = database.build_graph_store()

        stats = await load_reference_data(store)
        print(f"reference data: {stats}")

        seeds = await ensure_seed_users(store)
        print(f"seed users: {', '.join(seeds)}")

        diagnostics = await store.diagnose()
        for name, count in diagnostics.to_dict().items():
            print(f"  {name:<16} {count}")
    finally:
        await database.close_db()


if __name__ == "__main__":
    asyncio.run(main())
