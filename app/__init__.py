# app/__init__.py

"""
Template Migration API의 메인 패키지입니다.

이 패키지는 테넌트 간 구성 패키지(스키마, 디바이스 타입, 대시보드, 알림 규칙, 자산)를
export / 검증 / import 하는 서비스의 핵심 로직을 포함합니다.
FastAPI 애플리케이션의 진입점 (main.py)과
공통 설정, 데이터베이스 연결, 의존성 주입을 담는 core 서브패키지,
그리고 템플릿 도메인(tpl)을 담는 domains 서브패키지로 구성됩니다.
"""

APP_NAME = "Template Migration API"
APP_VERSION = "0.1.0"
API_PREFIX = "/api/v1"  # API 라우트의 공통 접두사 (main.py에서 적용)

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Configuration package export/import service for multi-tenant platforms."
__license__ = "MIT"
__all__ = []  # 'from app import *' 시 내보낼 이름 목록. 일반적으로 사용하지 않습니다.
