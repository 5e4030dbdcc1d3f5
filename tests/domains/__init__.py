# tests/domains/__init__.py

"""
도메인별 테스트 패키지입니다.

- `test_tpl_*.py`: 'tpl' 도메인 (구성 패키지 검증, export, import, 외부 서비스 클라이언트, API)
"""

__all__ = []
