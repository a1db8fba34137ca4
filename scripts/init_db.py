from pathlib import Path
import sys

# Ensure project root is on sys.path
current_dir = Path(__file__).resolve().parent
project_root = current_dir.parent

if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from shared_utils.config_loader import get_settings
from adapters.sql_meeting_store import SqlMeetingStoreAdapter


def init_db() -> None:
    """
    Create the meeting tables for DATABASE_URI. Existing tables are left as is.
    """
    settings = get_settings()
    print(f"Targeting database at: {settings.database_uri}")

    store = SqlMeetingStoreAdapter(database_uri=settings.database_uri)
    store.create_schema()
    print("Schema ready.")


if __name__ == "__main__":
    init_db()
