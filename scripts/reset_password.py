"""
비밀번호 재설정 스크립트
----------------------
사용법: python scripts/reset_password.py user@example.com NEW_PASSWORD
"""

import sys
from pathlib import Path

# 환경 변수 로드
from dotenv import load_dotenv

BACKEND_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(BACKEND_ROOT / ".env")

# placer 모듈 import를 위해 경로 추가
sys.path.insert(0, str(BACKEND_ROOT))

from placer.core.config import settings
from placer.core.errors import NotFound
from placer.db.session import SessionLocal
from placer.services.users import reset_password


def main() -> int:
    if len(sys.argv) != 3:
        print("사용법: python scripts/reset_password.py <email> <new_password>")
        return 1

    email, new_password = sys.argv[1], sys.argv[2]
    if len(new_password) < settings.password_min_length:
        print(f"❌ 비밀번호는 최소 {settings.password_min_length}자 이상이어야 합니다")
        return 1

    db = SessionLocal()
    try:
        reset_password(db, email, new_password)
    except NotFound:
        print(f"❌ 사용자를 찾을 수 없습니다: {email}")
        return 1
    finally:
        db.close()

    print(f"✅ {email} 비밀번호 재설정 완료")
    return 0


if __name__ == "__main__":
    sys.exit(main())
