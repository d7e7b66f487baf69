"""
输出门面单元测试
"""

import io

from rich.console import Console

from upgen.utils.logging import LogStage, OutputFacade, OutputLevel


def _facade():
    out, err = io.StringIO(), io.StringIO()
    facade = OutputFacade(
        console=Console(file=out, width=200, color_system=None),
        error_console=Console(file=err, width=200, color_system=None),
    )
    return facade, out, err


class TestOutputFacade:
    """OutputFacade 测试"""

    def test_stage_and_level_in_output(self):
        """测试输出包含级别和阶段"""
        facade, out, _ = _facade()
        facade.emit(OutputLevel.INFO, "复制条目: 3/4", LogStage.COLLECT)

        text = out.getvalue()
        assert "INFO" in text
        assert "COLLECT" in text
        assert "复制条目: 3/4" in text

    def test_errors_go_to_stderr(self):
        facade, out, err = _facade()
        facade.emit(OutputLevel.ERROR, "boom")

        assert "boom" in err.getvalue()
        assert out.getvalue() == ""

    def test_level_filter(self):
        """测试低于当前级别的消息被过滤"""
        facade, out, _ = _facade()
        facade.emit(OutputLevel.DEBUG, "hidden")
        facade.set_level(OutputLevel.DEBUG)
        facade.emit(OutputLevel.DEBUG, "shown")

        assert "hidden" not in out.getvalue()
        assert "shown" in out.getvalue()

    def test_disabled_keeps_errors(self):
        """测试关闭日志后仍然输出错误"""
        facade, out, err = _facade()
        facade.set_enabled(False)
        facade.emit(OutputLevel.WARNING, "quiet")
        facade.emit(OutputLevel.ERROR, "loud")

        assert out.getvalue() == ""
        assert "loud" in err.getvalue()

    def test_markup_in_message_is_literal(self):
        """测试消息中的方括号按原样输出"""
        facade, out, _ = _facade()
        facade.emit(OutputLevel.INFO, "path [red]x[/red]")

        assert "[red]x[/red]" in out.getvalue()

    def test_log_file(self, tmp_path):
        """测试日志文件追加写入"""
        facade, _, _ = _facade()
        log_path = tmp_path / "logs" / "upgen.log"
        facade.set_log_file(log_path)
        facade.emit(OutputLevel.INFO, "written", LogStage.ARCHIVE)
        facade.close()

        content = log_path.read_text(encoding="utf-8")
        assert "[INFO] [ARCHIVE] written" in content
