import importlib.util
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from rewards_backend.config import Settings
from rewards_backend.config_store import (
    DEFAULT_ADMIN_SECRET,
    ConfigPatch,
    ConfigurationStore,
)
from rewards_backend.db import SqlDbClient

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "reset_admin_secret.py"


def load_script():
    spec = importlib.util.spec_from_file_location("reset_admin_secret", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class ResetAdminSecretScriptTests(unittest.TestCase):
    def setUp(self):
        self.script = load_script()
        self.data_dir = tempfile.mkdtemp()
        self.database_url = f"sqlite+pysqlite:///{self.data_dir}/rewards.db"
        self.db = SqlDbClient(self.database_url)
        ConfigurationStore(self.db).upsert(
            "global_config", ConfigPatch.of(admin_secret="forgotten")
        )

    def tearDown(self):
        self.db.engine.dispose()
        shutil.rmtree(self.data_dir, ignore_errors=True)

    def run_script(self, settings, argv=()):
        with patch.object(self.script, "get_settings", return_value=settings):
            return self.script.main(list(argv))

    def stored_secret(self):
        return SqlDbClient(self.database_url).get_config("global_config").admin_secret

    def test_resets_secret_in_server_database(self):
        settings = Settings(database_url=self.database_url, admin_reset_secret="ops")
        self.assertEqual(self.run_script(settings), 0)
        self.assertEqual(self.stored_secret(), DEFAULT_ADMIN_SECRET)

    def test_wrong_reset_secret_fails(self):
        settings = Settings(database_url=self.database_url, admin_reset_secret="ops")
        self.assertEqual(self.run_script(settings, ["--reset-secret", "guess"]), 1)
        self.assertEqual(self.stored_secret(), "forgotten")

    def test_refuses_without_shared_database(self):
        for settings in [
            Settings(database_url=None, admin_reset_secret="ops"),
            Settings(
                database_url=self.database_url,
                use_in_memory_backends=True,
                admin_reset_secret="ops",
            ),
        ]:
            with self.subTest(settings=settings):
                self.assertEqual(self.run_script(settings), 1)
        self.assertEqual(self.stored_secret(), "forgotten")


if __name__ == "__main__":
    unittest.main()
