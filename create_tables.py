# create_tables.py：开发环境直接建表（正式环境走 alembic upgrade head）
import asyncio

from wmsqc.db.base import Base, init_models
from wmsqc.db.session import close_engine, get_engine


async def main() -> None:
    init_models()
    print("正在创建所有数据库表...")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await close_engine()
    print("所有数据库表创建完成！")


if __name__ == "__main__":
    asyncio.run(main())
