"""Tests for loguru-based chapterizer logging."""

from loguru import logger

from audiobook_chapterizer.config import ChapterizerConfig


class TestSetupLogging:
    def setup_method(self):
        logger.remove()

    def teardown_method(self):
        logger.remove()

    def test_setup_creates_log_dir(self, tmp_path):
        log_dir = tmp_path / "logs"
        config = ChapterizerConfig(_env_file=None, log_dir=log_dir)
        config.setup_logging()
        assert log_dir.exists()

    def test_setup_adds_file_sink(self, tmp_path):
        log_dir = tmp_path / "logs"
        config = ChapterizerConfig(_env_file=None, log_dir=log_dir)
        config.setup_logging()
        logger.bind(stage="test").info("hello from test")
        content = (log_dir / "chapterizer.log").read_text()
        assert "hello from test" in content

    def test_stage_context_in_output(self, tmp_path):
        log_dir = tmp_path / "logs"
        ChapterizerConfig(_env_file=None, log_dir=log_dir).setup_logging()
        logger.bind(stage="verify").info("checking part")
        content = (log_dir / "chapterizer.log").read_text()
        assert "| verify" in content

    def test_default_stage_empty(self, tmp_path):
        log_dir = tmp_path / "logs"
        ChapterizerConfig(_env_file=None, log_dir=log_dir).setup_logging()
        logger.info("no stage bound")
        content = (log_dir / "chapterizer.log").read_text()
        assert "no stage bound" in content

    def test_file_sink_always_debug(self, tmp_path):
        log_dir = tmp_path / "logs"
        ChapterizerConfig(_env_file=None, log_dir=log_dir, quiet=True).setup_logging()
        logger.debug("debug detail")
        assert "debug detail" in (log_dir / "chapterizer.log").read_text()

    def test_no_log_dir_no_file(self, tmp_path, capsys):
        ChapterizerConfig(_env_file=None).setup_logging()
        logger.bind(stage="plan").warning("stderr only")
        assert "stderr only" in capsys.readouterr().err

    def test_quiet_hides_info(self, capsys):
        ChapterizerConfig(_env_file=None, quiet=True).setup_logging()
        logger.info("chatty")
        logger.warning("important")
        err = capsys.readouterr().err
        assert "chatty" not in err
        assert "important" in err

    def test_verbose_shows_debug(self, capsys):
        ChapterizerConfig(_env_file=None, verbose=True).setup_logging()
        logger.debug("deep detail")
        assert "deep detail" in capsys.readouterr().err
