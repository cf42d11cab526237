"""Tests for env file parsing and persistence."""

from meetcute import env_store


class TestParseEnv:

    def test_skips_blank_lines_and_comments(self):
        content = "# header\n\nPORT=5000\n   \n  # indented comment\nNODE_ENV=development\n"
        assert env_store.parse_env(content) == {"PORT": "5000", "NODE_ENV": "development"}

    def test_line_without_equals_is_dropped(self):
        content = "PORT=5000\nnot a valid line\nDB_HOST=localhost\n"
        assert env_store.parse_env(content) == {"PORT": "5000", "DB_HOST": "localhost"}

    def test_only_first_equals_separates(self):
        env = env_store.parse_env("DATABASE_URL=postgres://u:p@h/db?sslmode=require&a=b\n")
        assert env["DATABASE_URL"] == "postgres://u:p@h/db?sslmode=require&a=b"

    def test_value_and_key_are_trimmed(self):
        assert env_store.parse_env("  JWT_SECRET =  abc==  \n") == {"JWT_SECRET": "abc=="}

    def test_empty_value_is_kept(self):
        assert env_store.parse_env("EMAIL_HOST=\n") == {"EMAIL_HOST": ""}

    def test_line_with_empty_key_is_dropped(self):
        assert env_store.parse_env("=orphan\nPORT=1\n") == {"PORT": "1"}

    def test_later_duplicate_wins_and_keeps_first_position(self):
        env = env_store.parse_env("A=1\nB=2\nA=3\n")
        assert list(env.items()) == [("A", "3"), ("B", "2")]


class TestLoadSave:

    def test_missing_file_loads_empty(self, tmp_path):
        assert env_store.load(tmp_path / "absent.env") == {}

    def test_round_trip_preserves_values_and_order(self, tmp_path):
        path = tmp_path / ".env"
        env = {
            "NODE_ENV": "production",
            "PORT": "5000",
            "JWT_SECRET": "a=b=c",
            "FRONTEND_URL": "http://localhost:5173",
            "EMAIL_HOST": "",
        }
        env_store.save(path, env)
        loaded = env_store.load(path)
        assert loaded == env
        assert list(loaded) == list(env)

    def test_save_writes_one_line_per_entry(self, tmp_path):
        path = tmp_path / ".env"
        env_store.save(path, {"A": "1", "B": "2"})
        assert path.read_text() == "A=1\nB=2\n"

    def test_save_overwrites_existing_content(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("OLD=value\nOTHER=x\n")
        env_store.save(path, {"NEW": "1"})
        assert env_store.load(path) == {"NEW": "1"}

    def test_atomic_save_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / ".env"
        env_store.save(path, {"A": "1"}, atomic=True)
        assert path.read_text() == "A=1\n"
        assert not (tmp_path / ".env.tmp").exists()

    def test_header_is_written_as_comments_and_ignored_on_load(self, tmp_path):
        path = tmp_path / ".env"
        env_store.save(path, {"A": "1"}, header=["Environment Configuration", "Generated on today"])
        text = path.read_text()
        assert text.startswith("# Environment Configuration\n# Generated on today\n\n")
        assert env_store.load(path) == {"A": "1"}


class TestMergeMissing:

    def test_does_not_overwrite_existing_keys(self):
        target = {"PORT": "6000"}
        imported = env_store.merge_missing(target, {"PORT": "5000", "DB_HOST": "localhost"})
        assert imported == 1
        assert target == {"PORT": "6000", "DB_HOST": "localhost"}

    def test_nothing_to_import(self):
        target = {"PORT": "6000"}
        assert env_store.merge_missing(target, {"PORT": "1"}) == 0
        assert target == {"PORT": "6000"}
