# tests/__init__.py

"""
Template Migration API 테스트 스위트입니다.

- `conftest.py`: 인메모리 DB 세션, 인메모리 플랫폼 서비스, 테스트 클라이언트 픽스처
- `fakes.py`: 실패 주입이 가능한 인메모리 서비스와 패키지 생성 헬퍼
- `domains/`: 도메인별 테스트
"""

__title__ = "Template Migration API Tests"
__all__ = []
