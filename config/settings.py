"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


DEFAULT_STAGES = ["validation", "analysis", "interpret", "style", "illustration"]


class ScraperSettings(BaseSettings):
    """网页抓取配置"""
    fetch_timeout: float = Field(default=30.0, description="页面抓取超时(秒)")
    check_timeout: float = Field(default=10.0, description="可访问性探测超时(秒)")
    max_redirects: int = Field(default=5, description="最大重定向次数")
    min_body_length: int = Field(default=200, description="候选正文节点最短文本长度")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        ),
        description="浏览器 User-Agent",
    )
    accept_language: str = Field(default="en-US,en;q=0.9,ko;q=0.8", description="Accept-Language")

    class Config:
        env_prefix = "SCRAPER_"


class LLMSettings(BaseSettings):
    """LLM 配置"""
    provider: str = Field(default="openai", description="LLM提供商: openai, deepseek, mock")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")
    temperature: float = Field(default=0.7, description="生成温度")
    max_tokens: int = Field(default=4096, description="最大生成token数")
    timeout: float = Field(default=60.0, description="请求超时(秒)")
    base_url: Optional[str] = Field(default=None, description="OpenAI 兼容接口地址")

    # API Keys
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API Key")

    # 图像 / 语音
    image_model: str = Field(default="dall-e-3", description="图像生成模型")
    image_size: str = Field(default="1792x1024", description="图像尺寸")
    tts_model: str = Field(default="tts-1", description="语音合成模型")
    tts_voice: str = Field(default="alloy", description="语音音色")
    audio_dir: str = Field(default="./data/audio", description="音频文件目录")

    class Config:
        env_prefix = "LLM_"

    def active_api_key(self) -> Optional[str]:
        if self.provider == "deepseek":
            return self.deepseek_api_key
        if self.provider == "openai":
            return self.openai_api_key
        return None


class EmbeddingSettings(BaseSettings):
    """Embedding 服务配置"""
    provider: str = Field(default="openai", description="Embedding提供商: openai, siliconflow, mock")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    siliconflow_api_key: Optional[str] = Field(default=None, description="SiliconFlow API Key")

    class Config:
        env_prefix = "EMBEDDING_"


class StorageSettings(BaseSettings):
    """存储配置"""
    vector_db_provider: str = Field(default="qdrant", description="向量数据库: qdrant, memory")
    vector_db_path: str = Field(default="./data/qdrant_db", description="向量数据库存储路径")
    style_path: str = Field(default="./data/style/patterns.json", description="写作风格模式文件")

    # Qdrant 远程连接配置 (可选)
    qdrant_url: Optional[str] = Field(default=None, description="Qdrant Cloud URL")
    qdrant_api_key: Optional[str] = Field(default=None, description="Qdrant Cloud API Key")

    class Config:
        env_prefix = "STORAGE_"


class RetrySettings(BaseSettings):
    """外部服务重试策略"""
    max_retries: int = Field(default=3, description="最大尝试次数(含首次)")
    max_backoff: float = Field(default=30.0, description="指数退避上限(秒)")

    class Config:
        env_prefix = "RETRY_"


class RAGSettings(BaseSettings):
    """检索增强配置"""
    enabled: bool = Field(default=True, description="是否启用 RAG")
    chunk_size: int = Field(default=800, description="分块最大字符数")
    top_k: int = Field(default=3, description="每个集合检索条数")
    similarity_threshold: float = Field(default=0.5, description="知识检索相似度阈值")
    index_analyses: bool = Field(default=True, description="分析结果写回知识库")

    class Config:
        env_prefix = "RAG_"


class AnalysisSettings(BaseSettings):
    """分析阶段配置"""
    key_points_count: int = Field(default=4, description="期望要点数量")
    max_content_chars: int = Field(default=40000, description="送入模型的正文上限")
    enable_narration: bool = Field(default=True, description="生成播报稿")
    enable_tts: bool = Field(default=False, description="生成语音")
    target_language: str = Field(default="Korean", description="摘要目标语言")

    class Config:
        env_prefix = "ANALYSIS_"


class PipelineSettings(BaseSettings):
    """流水线配置"""
    mock_mode: bool = Field(default=False, description="离线模拟模式")
    stop_on_failure: bool = Field(default=True, description="阶段失败时停止")
    stages: List[str] = Field(default_factory=lambda: list(DEFAULT_STAGES), description="阶段顺序")
    enable_interpret: bool = Field(default=True, description="启用解读阶段")
    enable_illustration: bool = Field(default=True, description="启用配图阶段")
    min_content_length: int = Field(default=100, description="正文最短长度")
    blocked_domains: List[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])
    run_timeout: float = Field(default=300.0, description="单次运行超时(秒)")

    class Config:
        env_prefix = "PIPELINE_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    scraper: ScraperSettings = Field(default_factory=ScraperSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    rag: RAGSettings = Field(default_factory=RAGSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            scraper=ScraperSettings(),
            llm=LLMSettings(),
            embedding=EmbeddingSettings(),
            storage=StorageSettings(),
            retry=RetrySettings(),
            rag=RAGSettings(),
            analysis=AnalysisSettings(),
            pipeline=PipelineSettings(),
        )

    @property
    def mock_mode(self) -> bool:
        """显式开启，或未配置 LLM API Key 时进入模拟模式"""
        if self.pipeline.mock_mode or self.llm.provider == "mock":
            return True
        return not self.llm.active_api_key()


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()


