from __future__ import annotations

from collection_runner.config.settings import settings
from collection_runner.core.file_manager import empty_dir


def main() -> None:
    for directory in (
        settings.results_path,
        settings.report_path,
        settings.collections_path,
        settings.environments_path,
    ):
        if directory.exists():
            empty_dir(directory)
    print("Workspace cleaned")


if __name__ == "__main__":
    main()
