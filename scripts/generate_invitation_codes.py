"""
Generate Invitation Codes
=========================
Creates single-use registration codes in the invitation codes container.

Run with: python scripts/generate_invitation_codes.py [count]
"""

import asyncio
import logging
import secrets
import string
import sys
from pathlib import Path

# Add the backend directory to the path
BASE_DIR = Path(__file__).parent.parent
BACKEND_DIR = BASE_DIR / "backend"
sys.path.insert(0, str(BACKEND_DIR))

from desirable.config import settings  # noqa: E402
from desirable.models.invitation import InvitationCode  # noqa: E402
from desirable.services.cosmos_db_service import cosmos_db_service  # noqa: E402


logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger("generate_invitation_codes")

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
DEFAULT_COUNT = 300
SAMPLE_SIZE = 10


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


async def generate_unique_codes(count: int) -> list[str]:
    """Draw codes until `count` are found that exist neither here nor in the store."""
    codes: list[str] = []
    attempts = count * 2

    for _ in range(attempts):
        if len(codes) >= count:
            break
        code = generate_code()
        if code in codes:
            continue
        if await cosmos_db_service.get_invitation_code(code) is None:
            codes.append(code)

    if len(codes) < count:
        raise RuntimeError(f"Could only generate {len(codes)} unique codes out of {count} requested")
    return codes


async def count_codes() -> int:
    return await cosmos_db_service.count_items("invitation_codes", "true")


async def main(count: int) -> None:
    logger.info(f"Found {await count_codes()} existing invitation codes")

    logger.info(f"Generating {count} unique invitation codes...")
    codes = await generate_unique_codes(count)

    for code in codes:
        await cosmos_db_service.create_invitation_code(InvitationCode(code=code).to_document())
    logger.info(f"Inserted {len(codes)} invitation codes")

    print("\nSample invitation codes:")
    for index, code in enumerate(codes[:SAMPLE_SIZE], start=1):
        print(f"{index}. {code}")
    if len(codes) > SAMPLE_SIZE:
        print(f"... and {len(codes) - SAMPLE_SIZE} more codes")

    logger.info(f"Total invitation codes in database: {await count_codes()}")


if __name__ == "__main__":
    try:
        requested = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_COUNT
    except ValueError:
        requested = DEFAULT_COUNT

    try:
        asyncio.run(main(requested))
    except Exception as e:
        logger.error(f"Error generating invitation codes: {e}")
        sys.exit(1)
