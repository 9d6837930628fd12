from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./data/lorange.duckdb"
    
    # JWT配置
    jwt_secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7天
    auth_cookie_name: str = "token"
    
    # API配置
    api_title: str = "L'Orange API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api"
    cors_origins: str = "*"
    
    # 媒体上传
    uploads_dir: str = "./uploads"
    max_upload_bytes: int = 10 * 1024 * 1024  # 10MB
    
    # 访问统计
    ip_hash_salt: str = "change-me"
    track_rate_limit: int = 120
    track_rate_window_seconds: int = 60
    # GeoLite2-City 数据库路径，为空时只使用 CF-IPCity / CF-IPCountry 请求头
    geoip_database_path: Optional[str] = None
    
    # 休息日展开的默认时间跨度（年）
    closure_window_years: int = 5
    
    # 开发模式
    debug: bool = False
    log_level: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = False
    
    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

# 全局设置实例
settings = Settings()
