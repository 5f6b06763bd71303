"""图数据库连接管理"""
import logging

from neo4j import AsyncGraphDatabase

from playmood.core.config import settings

logger = logging.getLogger(__name__)

# Neo4j 驱动
neo4j_driver = None


async def init_db():
    """初始化 Neo4j 驱动"""
    global neo4j_driver

    neo4j_driver = AsyncGraphDatabase.driver(
        settings.NEO4J_URI,
        auth=(settings.NEO4J_USER, settings.NEO4J_PASSWORD)
    )
    logger.info(f"Neo4j driver created for {settings.NEO4J_URI}")


async def close_db():
    """关闭 Neo4j 驱动"""
    global neo4j_driver

    if neo4j_driver:
        await neo4j_driver.close()
        neo4j_driver = None


def get_neo4j_driver():
    """获取 Neo4j 驱动"""
    return neo4j_driver


def build_graph_store():
    """用当前驱动构建 Neo4jGraphStore"""
    from playmood.services.neo4j_store import Neo4jGraphStore

    if neo4j_driver is None:
        logger.warning("Neo4j driver not initialized, store calls will fail until init_db() runs")
    return Neo4jGraphStore(neo4j_driver)
