# app/core/__init__.py

"""
FastAPI 애플리케이션의 핵심 구성 요소 패키지입니다.

이 패키지는 애플리케이션 전반에 걸쳐 사용되는 공통적이고 핵심적인 기능들을 캡슐화합니다.
주요 서브모듈은 다음과 같습니다:

- `config.py`: 애플리케이션의 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 데이터베이스 연결, 세션 관리 (SQLModel 및 AsyncSQLAlchemy), 트랜잭션 헬퍼.
- `crud_base.py`: 공통 CRUD 기본 클래스.
- `exceptions.py`: 재고 도메인 예외 계층 (HTTP 상태 코드 매핑 포함).
- `state_machine.py`: 워크플로우 상태 전이 테이블.
- `security.py`: 사용자 인증, 권한 부여, 비밀번호 해싱 등 보안 관련 유틸리티.
- `dependencies.py`: FastAPI의 의존성 주입 시스템에서 사용될 공통 의존성 함수들.
- `tasks.py`: ARQ 워커용 공통 태스크.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "MWIMS Core"
__description__ = "Core components for MWIMS FastAPI application."
__version__ = "0.1.0"  # core 패키지의 버전
__all__ = []  # 'from app.core import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
