"""
검색 인덱스 생성 스크립트 (PostgreSQL)
-------------------------------------
텍스트 검색(ILIKE)과 위치 검색 성능 향상을 위한 인덱스 생성
"""

import sys
from pathlib import Path

# 환경 변수 로드
from dotenv import load_dotenv

BACKEND_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(BACKEND_ROOT / ".env")

# placer 모듈 import를 위해 경로 추가
sys.path.insert(0, str(BACKEND_ROOT))

from sqlalchemy import text

from placer.db.session import engine

INDEXES = [
    ("pg_trgm extension", "CREATE EXTENSION IF NOT EXISTS pg_trgm"),
    (
        "places.name trigram",
        "CREATE INDEX IF NOT EXISTS places_name_trgm_idx ON places USING gin (name gin_trgm_ops)",
    ),
    (
        "places.description trigram",
        "CREATE INDEX IF NOT EXISTS places_description_trgm_idx ON places USING gin (description gin_trgm_ops)",
    ),
    (
        "places.address trigram",
        "CREATE INDEX IF NOT EXISTS places_address_trgm_idx ON places USING gin (address gin_trgm_ops)",
    ),
    # 바운딩 박스 사전 필터용
    (
        "places (latitude, longitude)",
        "CREATE INDEX IF NOT EXISTS places_lat_lng_idx ON places (latitude, longitude)",
    ),
    (
        "places (is_public, status, created_at)",
        "CREATE INDEX IF NOT EXISTS places_visible_created_idx ON places (is_public, status, created_at DESC)",
    ),
]


def create_indexes() -> None:
    """검색 인덱스 생성."""
    if engine.dialect.name != "postgresql":
        print(f"⚠️  PostgreSQL 전용 스크립트입니다 (현재: {engine.dialect.name})")
        return

    print("🔧 검색 인덱스 생성 중...")
    with engine.connect() as conn:
        for label, ddl in INDEXES:
            print(f"  - {label} 생성 중...")
            try:
                conn.execute(text(ddl))
                conn.commit()
                print(f"  ✅ {label} 완료")
            except Exception as e:
                print(f"  ⚠️  {label} 생성 실패: {e}")
                conn.rollback()

    print("\n✅ 인덱스 생성 완료!")


if __name__ == "__main__":
    create_indexes()
