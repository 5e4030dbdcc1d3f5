# app/domains/__init__.py

"""
비즈니스 도메인 패키지 모음입니다.

- `tpl`: 구성 패키지(템플릿) export / 검증 / import 및 템플릿 라이브러리.
"""

__all__ = []
