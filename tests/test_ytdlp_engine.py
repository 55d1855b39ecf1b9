import io
import subprocess
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock, patch

from core.binaries import ToolHandle
from core.errors import FetchFailed, InitFailed
from providers.ytdlp import SAVED_MARKER, YtDlpEngine

YT_DLP = ToolHandle("yt-dlp", Path("/opt/bin/yt-dlp"))
FFMPEG = ToolHandle("ffmpeg", Path("/opt/bin/ffmpeg"))


def _version_ok(*_args, **_kwargs):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout="2024.08.06\n")


def _fake_proc(lines, returncode=0):
    proc = MagicMock()
    proc.stdout = io.StringIO("".join(lines))
    proc.wait.return_value = returncode
    return proc


class EngineInitTests(unittest.TestCase):
    @patch("providers.ytdlp.run_capture", side_effect=_version_ok)
    def test_init_checks_version(self, mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))

        self.assertEqual(engine.version, "2024.08.06")
        self.assertEqual(mock_run.call_args.args[0], [str(YT_DLP.path), "--version"])

    @patch("providers.ytdlp.run_capture", side_effect=FileNotFoundError("no such file"))
    def test_unrunnable_binary_is_init_failed(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            with self.assertRaises(InitFailed):
                YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))

    @patch(
        "providers.ytdlp.run_capture",
        return_value=subprocess.CompletedProcess(args=[], returncode=1, stdout="boom"),
    )
    def test_nonzero_version_exit_is_init_failed(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            with self.assertRaisesRegex(InitFailed, "boom"):
                YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))

    @patch("providers.ytdlp.run_capture", side_effect=_version_ok)
    def test_unresolved_handle_or_missing_dir_is_init_failed(self, mock_run):
        with TemporaryDirectory() as tmp_dir:
            with self.assertRaises(InitFailed):
                YtDlpEngine(yt_dlp=ToolHandle("yt-dlp"), ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            with self.assertRaises(InitFailed):
                YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir) / "missing")
        mock_run.assert_not_called()


@patch("providers.ytdlp.run_capture", side_effect=_version_ok)
class EngineFetchTests(unittest.TestCase):
    def test_args_pass_ffmpeg_and_output_template(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            args = engine.build_args("https://youtu.be/x", "clip.mp4")

        self.assertEqual(args[0], str(YT_DLP.path))
        self.assertEqual(args[args.index("--ffmpeg-location") + 1], str(FFMPEG.path))
        self.assertEqual(args[args.index("-o") + 1], str(Path(tmp_dir) / "clip.mp4"))
        self.assertEqual(args[args.index("--merge-output-format") + 1], "mp4")
        self.assertEqual(args[-2:], ["--", "https://youtu.be/x"])

    def test_fetch_returns_path_reported_by_tool(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            final = str(Path(tmp_dir) / "clip.mp4.mkv")
            proc = _fake_proc(["[download] 100%\n", f"{SAVED_MARKER}{final}\n"])

            with patch("providers.ytdlp.subprocess.Popen", return_value=proc) as mock_popen:
                path = engine.fetch("https://youtu.be/x", "clip.mp4")

        self.assertEqual(path, Path(final))
        mock_popen.assert_called_once()

    def test_fetch_falls_back_to_computed_path(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            with patch("providers.ytdlp.subprocess.Popen", return_value=_fake_proc(["done\n"])):
                path = engine.fetch("https://youtu.be/x", "clip.mp4")

        self.assertEqual(path, Path(tmp_dir) / "clip.mp4")

    def test_fetch_failure_carries_error_lines(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            proc = _fake_proc(
                ["[youtube] x: Downloading webpage\n", "ERROR: [youtube] x: Video unavailable\n"],
                returncode=1,
            )
            with patch("providers.ytdlp.subprocess.Popen", return_value=proc):
                with self.assertRaises(FetchFailed) as ctx:
                    engine.fetch("https://youtu.be/x", "clip.mp4")

        self.assertEqual(str(ctx.exception), "ERROR: [youtube] x: Video unavailable")

    def test_fetch_cannot_start_process(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            with patch("providers.ytdlp.subprocess.Popen", side_effect=PermissionError("denied")):
                with self.assertRaisesRegex(FetchFailed, "denied"):
                    engine.fetch("https://youtu.be/x", "clip.mp4")

    def test_percent_in_filename_is_escaped_for_output_template(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            args = engine.build_args("https://youtu.be/x", "clip_%(id)s.mp4")

        self.assertEqual(args[args.index("-o") + 1], str(Path(tmp_dir) / "clip_%%(id)s.mp4"))

    def test_percent_filename_fallback_path_is_literal(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            with patch("providers.ytdlp.subprocess.Popen", return_value=_fake_proc(["done\n"])):
                path = engine.fetch("https://youtu.be/x", "100%.mp4")

        self.assertEqual(path, Path(tmp_dir) / "100%.mp4")

    def test_output_is_decoded_as_utf8_with_replacement(self, _mock_run):
        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            with patch("providers.ytdlp.subprocess.Popen", return_value=_fake_proc([])) as mock_popen:
                engine.fetch("https://youtu.be/x", "clip.mp4")

        kwargs = mock_popen.call_args.kwargs
        self.assertEqual((kwargs["encoding"], kwargs["errors"]), ("utf-8", "replace"))

    def test_read_error_becomes_fetch_failed_and_stops_child(self, _mock_run):
        def broken_stdout():
            yield "[youtube] x: Downloading webpage\n"
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            proc = _fake_proc([])
            proc.stdout = broken_stdout()
            proc.poll.return_value = None
            with patch("providers.ytdlp.subprocess.Popen", return_value=proc):
                with self.assertRaises(FetchFailed):
                    engine.fetch("https://youtu.be/x", "clip.mp4")

        proc.terminate.assert_called_once()
        proc.wait.assert_called()

    def test_interrupt_stops_child_and_propagates(self, _mock_run):
        def interrupted_stdout():
            yield "[download]   3.0%\n"
            raise KeyboardInterrupt

        with TemporaryDirectory() as tmp_dir:
            engine = YtDlpEngine(yt_dlp=YT_DLP, ffmpeg=FFMPEG, output_dir=Path(tmp_dir))
            proc = _fake_proc([])
            proc.stdout = interrupted_stdout()
            proc.poll.return_value = None
            with patch("providers.ytdlp.subprocess.Popen", return_value=proc):
                with self.assertRaises(KeyboardInterrupt):
                    engine.fetch("https://youtu.be/x", "clip.mp4")

        proc.terminate.assert_called_once()


if __name__ == "__main__":
    unittest.main()
