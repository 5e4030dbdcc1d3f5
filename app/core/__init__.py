# app/core/__init__.py

"""
FastAPI 애플리케이션의 핵심 구성 요소 패키지입니다.

이 패키지는 애플리케이션 전반에 걸쳐 사용되는 공통 기능들을 캡슐화합니다.
주요 서브모듈은 다음과 같습니다:

- `config.py`: 애플리케이션의 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 데이터베이스 연결, 세션 관리 (SQLModel 및 AsyncSQLAlchemy).
- `crud_base.py`: 템플릿 라이브러리 등 테이블 CRUD의 공통 기반 클래스.
- `dependencies.py`: FastAPI의 의존성 주입 시스템에서 사용될 공통 의존성 함수들
  (DB 세션, 테넌트 식별, 외부 서비스 클라이언트).
"""

__title__ = "Template Migration Core"
__description__ = "Core components for the Template Migration API."
__version__ = "0.1.0"
__all__ = []  # 'from app.core import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
