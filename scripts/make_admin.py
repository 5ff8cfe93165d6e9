"""
관리자 지정 스크립트
-------------------
이메일로 사용자를 찾아 관리자로 승격하고 승인 처리합니다.

사용법: python scripts/make_admin.py user@example.com
"""

import sys
from pathlib import Path

# 환경 변수 로드
from dotenv import load_dotenv

BACKEND_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(BACKEND_ROOT / ".env")

# placer 모듈 import를 위해 경로 추가
sys.path.insert(0, str(BACKEND_ROOT))

from placer.core.errors import NotFound
from placer.db.session import SessionLocal
from placer.services.users import make_admin


def main() -> int:
    if len(sys.argv) != 2:
        print("사용법: python scripts/make_admin.py <email>")
        return 1

    email = sys.argv[1]
    db = SessionLocal()
    try:
        user = make_admin(db, email)
    except NotFound:
        print(f"❌ 사용자를 찾을 수 없습니다: {email}")
        return 1
    finally:
        db.close()

    print(f"✅ {user.email} 관리자 지정 완료 (id={user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
