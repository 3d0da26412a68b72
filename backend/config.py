from __future__ import annotations

import logging
from typing import Dict, Literal, Tuple
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# 加载环境变量文件
load_dotenv()


class ImportConfig(BaseSettings):
    """PSD导入相关配置常量"""

    # 文字默认值
    DEFAULT_FONT_SIZE_PT: float = Field(16.0, description="缺省字号(pt)")
    DEFAULT_FONT_NAME: str = Field("Arial", description="缺省字体")
    DEFAULT_LINE_HEIGHT: float = Field(1.2, description="缺省行高比例")

    # 字距/行高限制
    LETTER_SPACING_MIN: float = Field(-0.5, description="字距下限(em)")
    LETTER_SPACING_MAX: float = Field(2.0, description="字距上限(em)")
    LINE_HEIGHT_MIN: float = Field(0.8, description="行高比例下限")
    LINE_HEIGHT_MAX: float = Field(3.0, description="行高比例上限")

    # 位图配置
    SUPERSAMPLE_FACTOR: int = Field(2, description="超采样倍数")
    ENHANCE_MAX_EDGE: int = Field(500, description="小于该边长的图像做质量增强")
    PLACEHOLDER_ALPHA: int = Field(128, description="占位位图不透明度(0-255)")

    # 占位元素
    PLACEHOLDER_FILL: str = Field("rgba(200, 200, 200, 0.3)", description="占位矩形填充")
    PLACEHOLDER_STROKE: str = Field("#ccc", description="占位矩形描边")
    PLACEHOLDER_STROKE_WIDTH: float = Field(1.0, description="占位矩形描边宽度")

    # 导入选项
    RASTERIZE_TEXT: bool = Field(False, description="文字图层默认以位图导入")
    DEFAULT_RESOLUTION: float = Field(72.0, description="缺省分辨率(ppi)")

    # 文件处理配置
    THUMBNAIL_BACKGROUND: Tuple[int, int, int] = Field((245, 245, 245), description="缩略图背景色")

    class Config:
        env_prefix = "PSD_IMPORT_"
        case_sensitive = False


class AppSettings(BaseSettings):
    """应用程序配置"""

    env: Literal["development", "production", "testing"] = Field("development", description="运行环境")
    domain: str = Field("localhost", description="服务器域名")
    port: int = Field(8012, description="服务器端口")

    # 目标画布
    canvas_width: int = Field(1080, description="默认目标画布宽度")
    canvas_height: int = Field(1080, description="默认目标画布高度")

    # 安全配置
    max_content_length: int = Field(100 * 1024 * 1024, description="最大上传文件大小")
    allowed_extensions: list[str] = Field([".psd"], description="允许的文件扩展名")

    # 日志配置
    log_level: str = Field("INFO", description="日志级别")
    log_format: str = Field("%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="日志格式")

    @property
    def api_base_url(self) -> str:
        """构建API基础URL"""
        return f"http://{self.domain}:{self.port}"

    class Config:
        env_file = ".env"
        case_sensitive = False


def setup_logging(level: str | None = None) -> None:
    """按配置初始化根日志"""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format=settings.log_format,
    )


def get_config() -> Dict[str, str]:
    """保持向后兼容的配置获取函数"""
    return {
        "ENV": settings.env,
        "DOMAIN": settings.domain,
        "API_BASE_URL": settings.api_base_url,
    }


# 创建配置实例
settings = AppSettings()
import_config = ImportConfig()

# 向后兼容
CONFIG = get_config()
