# app/core/config.py

from decimal import Decimal
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# 프로젝트의 루트 디렉토리 경로를 계산합니다.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    """
    애플리케이션의 모든 설정을 정의하는 Pydantic BaseSettings 모델입니다.
    환경 변수 및 .env 파일에서 값을 자동으로 로드합니다.
    """

    # --- Pydantic Settings 설정 ---
    model_config = SettingsConfigDict(
        env_file=os.path.join(BASE_DIR, '.env'),  # 프로젝트 루트의 .env 파일을 명시적으로 지정
        env_file_encoding='utf-8',           # .env 파일 인코딩
        extra='ignore',                      # .env 파일에 정의되었지만 모델에 없는 변수는 무시
        case_sensitive=True                  # 환경 변수 이름 대소문자 구분
    )

    # --- 애플리케이션 기본 설정 ---
    APP_NAME: str = "MWIMS FastAPI API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Medical Warehouse Inventory Management System (MWIMS) API"
    # 애플리케이션 환경 (예: "development", "production", "testing")
    APP_ENV: str = Field("development", description="Application environment (e.g., development, production, testing)")
    # 디버그 모드 활성화 여부
    DEBUG_MODE: bool = Field(False, description="Enable debug mode for detailed logging and error messages")
    LOG_LEVEL: str = Field("INFO", description="Root logging level (DEBUG, INFO, WARNING, ...)")

    # --- 데이터베이스 설정 ---
    DATABASE_URL: SecretStr = Field(..., description="PostgreSQL database connection URL")

    # --- JWT (JSON Web Token) 설정 ---
    SECRET_KEY: SecretStr = Field(..., description="Secret key for JWT token signing. Keep this highly secure!")
    ALGORITHM: str = Field("HS256", description="Algorithm used for JWT signing (e.g., HS256)")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(30, description="Access token expiration time in minutes")

    # --- ARQ (Redis) 설정 ---
    REDIS_HOST: str = Field("localhost", description="Redis host for the ARQ worker pool")
    REDIS_PORT: int = Field(6379, description="Redis port for the ARQ worker pool")

    # --- 재고 업무 규칙 ---
    TAX_RATE: Decimal = Field(Decimal("0.15"), description="Purchase order tax rate (0.15 = 15%)")
    EXPIRY_WARNING_DAYS: int = Field(90, description="유효기간 임박 경고 시작 일수 (WARNING)")
    EXPIRY_HIGH_DAYS: int = Field(60, description="유효기간 임박 알림 우선순위 HIGH 기준 일수")
    EXPIRY_CRITICAL_DAYS: int = Field(30, description="유효기간 임박 CRITICAL 기준 일수")

    # --- 알림 설정 ---
    NOTIFICATION_DEDUP_HOURS: int = Field(24, description="동일 대상 알림 중복 생성 방지 시간 (시간)")
    NOTIFICATION_TTL_DAYS: int = Field(30, description="자동 생성 알림의 보관 기간 (일)")


settings = Settings()
