import asyncio
import glob
import logging
import os
from typing import Dict, List

from models import RenderedTest

logger = logging.getLogger(__name__)

TEST_SUFFIX = ".test.yaml"


class TestFileStore:
    """File-based storage for rendered test definitions"""
    __test__ = False

    def __init__(self, test_dir: str):
        self.test_dir = test_dir

    def _ensure_directory(self):
        """Ensure the test directory exists"""
        os.makedirs(self.test_dir, exist_ok=True)

    def get_test_path(self, file_name: str) -> str:
        """Get test file path; names are flattened to the test directory"""
        return os.path.join(self.test_dir, os.path.basename(file_name))

    def write_sync(self, rendered: RenderedTest) -> str:
        """Write a rendered test, replacing any file with the same name"""
        self._ensure_directory()
        path = self.get_test_path(rendered.file_name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(rendered.content)
        logger.info(f"[STORAGE] Wrote {path}")
        return path

    async def write(self, rendered: RenderedTest) -> str:
        """Async write; OSError propagates to the caller"""
        return await asyncio.to_thread(self.write_sync, rendered)

    def list_tests(self) -> List[Dict[str, str]]:
        """All *.yaml tests in the test directory"""
        if not os.path.isdir(self.test_dir):
            return []

        tests = []
        for path in sorted(glob.glob(os.path.join(self.test_dir, "*.yaml"))):
            name = os.path.basename(path)
            if name.endswith(TEST_SUFFIX):
                name = name[:-len(TEST_SUFFIX)]
            tests.append({"name": name, "path": path})
        return tests
