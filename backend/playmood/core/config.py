"""应用配置"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path


class Settings(BaseSettings):
    """应用配置类"""

    # 应用配置
    APP_NAME: str = "Playmood"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Neo4j 配置
    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = "neo4j_secret"

    # 图谱读写超时（秒）
    NEO4J_READ_TIMEOUT_S: float = 5.0
    NEO4J_WRITE_TIMEOUT_S: float = 10.0

    # 推荐配置
    RECOMMENDATION_LIMIT: int = 5
    SOCIAL_SCORE_SCALE: float = 0.2  # 每个相似用户贡献的社交分

    # 相似度策略
    SIMILARITY_MIN_SHARED_ITEMS: int = 1  # 至少共同喜欢的游戏数
    SIMILARITY_SCALE: float = 0.2  # similarity = shared_count * scale
    SHARED_ITEMS_SAMPLE_SIZE: int = 10  # SimilarTo 边上保留的共同游戏样本数

    # 冷启动：种子用户
    SEED_USER_IDS: List[str] = [
        "seed_relaxed",
        "seed_adventurer",
        "seed_social",
    ]
    SEED_ADMISSION_PROBABILITY: float = 0.3
    SEED_SIMILARITY: float = 0.4
    SIMILARITY_RANDOM_SEED: Optional[int] = None

    # 反馈自动生成情绪状态
    AUTO_STATE_INTENSITY: float = 0.7
    DEFAULT_AUTO_EMOTION: str = "joyful"

    # 问卷：低于该权重的情绪不写入 RESONATES_WITH
    RESONANCE_MIN_WEIGHT: float = 0.1

    class Config:
        env_file = str(Path(__file__).resolve().parents[2] / ".env")
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
