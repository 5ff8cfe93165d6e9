"""
데이터베이스 스키마 초기화 스크립트
----------------------------------
테이블을 생성합니다. (이미 있는 테이블은 그대로 둠)
"""

import sys
from pathlib import Path

# 환경 변수 로드
from dotenv import load_dotenv

BACKEND_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(BACKEND_ROOT / ".env")

# placer 모듈 import를 위해 경로 추가
sys.path.insert(0, str(BACKEND_ROOT))

from sqlalchemy import inspect

from placer.db.init_db import init_db
from placer.db.session import engine


def init_db_schema() -> None:
    """데이터베이스 스키마 초기화."""
    print("🔧 데이터베이스 스키마 초기화 중...")

    init_db()
    print("✅ 테이블 생성 완료")

    print("\n📋 생성된 테이블:")
    for name in sorted(inspect(engine).get_table_names()):
        print(f"  - {name}")


if __name__ == "__main__":
    init_db_schema()
