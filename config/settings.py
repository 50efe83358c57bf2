"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)


class TrendsSettings(BaseSettings):
    """Google Trends 后端配置"""
    base_url: str = Field(default="https://trends.google.com", description="后端根地址")
    hl: str = Field(default="en-US", description="界面语言")
    tz: int = Field(default=0, description="时区偏移(分钟)")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User Agent")
    seed_cookies: bool = Field(default=True, description="获取会话时是否先访问首页拿 cookie")
    proxy_url: Optional[str] = Field(default=None, description="代理地址 (可选)")
    output_path: str = Field(default="./data/dataset.jsonl", description="输出数据集路径")

    class Config:
        env_prefix = "TRENDS_"


class GeneralSettings(BaseSettings):
    """通用设置"""
    request_timeout: int = Field(default=30, description="请求超时时间(秒)")
    max_retries: int = Field(default=5, description="最大尝试次数")
    log_level: str = Field(default="INFO", description="日志级别")


class BackoffSettings(BaseSettings):
    """退避/节流配置 (秒)"""
    network_base: float = Field(default=2.0, description="网络错误的线性退避基数")
    blocked_base: float = Field(default=10.0, description="被拦截时的线性退避基数")
    jitter_ratio: float = Field(default=0.5, description="重试抖动比例")
    inter_item_base: float = Field(default=3.0, description="条目间基础延迟")
    inter_item_jitter: float = Field(default=2.0, description="条目间随机抖动")
    cooldown_base: float = Field(default=30.0, description="解析失败后的冷却基础时长")
    cooldown_jitter: float = Field(default=15.0, description="冷却随机抖动")
    inter_fetch_base: float = Field(default=0.5, description="组件请求间基础延迟")
    inter_fetch_jitter: float = Field(default=1.0, description="组件请求间随机抖动")

    class Config:
        env_prefix = "BACKOFF_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    trends: TrendsSettings = Field(default_factory=TrendsSettings)
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    backoff: BackoffSettings = Field(default_factory=BackoffSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            trends=TrendsSettings(),
            general=GeneralSettings(),
            backoff=BackoffSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()


# 便捷访问
def get_trends_settings() -> TrendsSettings:
    return get_settings().trends


def get_backoff_settings() -> BackoffSettings:
    return get_settings().backoff
