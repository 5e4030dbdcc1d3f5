# app/domains/tpl/__init__.py

"""
FastAPI 애플리케이션의 'tpl' (template) 도메인 패키지입니다.

'tpl' 도메인은 한 테넌트의 구성 리소스(스키마, 디바이스 타입, 대시보드, 알림 규칙,
자산 계층, 외부 연동 설정)를 서로 참조하는 하나의 이식 가능한 패키지로 export 하고,
패키지의 구조적/참조 무결성을 검증하며, 다른 테넌트로 import 하는 역할을 합니다.

주요 서브모듈:
- `schemas.py`: 패키지 와이어 모델, API 요청/응답 모델, 외부 서비스 레코드 (Pydantic).
- `mapping.py`: 로컬 ID 발급, 식별자 맵, 위젯 참조 변환, 자산 계층 정렬.
- `validation.py`: 패키지 검증기.
- `exporter.py`: 테넌트 리소스 -> 패키지.
- `importer.py`: 패키지 -> 대상 테넌트 리소스 (import 및 미리보기).
- `clients.py`: 외부 플랫폼 서비스 인터페이스와 httpx 구현.
- `models.py` / `crud.py`: 저장된 템플릿(템플릿 라이브러리) 테이블과 CRUD.
- `routers.py`: FastAPI API 엔드포인트 정의.
"""

__title__ = "Template Domain"
__description__ = "Configuration package export, validation, import and template library."
__version__ = "0.1.0"
__all__ = []  # 'from app.domains.tpl import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
