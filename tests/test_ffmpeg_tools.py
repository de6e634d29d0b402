"""FFmpeg helper tests for path resolution and capture commands."""
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from scanner.services import ffmpeg_tools
from scanner.services.camera_device import VideoDevice
from scanner.services.ffmpeg_tools import VideoConstraints


class ResolveFfmpegPathTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)

    def tearDown(self):
        os.environ.pop("FFMPEG_PATH", None)

    def test_env_override_wins_when_file_exists(self):
        exe = Path(self.temp_dir.name) / "my-ffmpeg"
        exe.write_bytes(b"")
        os.environ["FFMPEG_PATH"] = str(exe)
        self.assertEqual(ffmpeg_tools.resolve_ffmpeg_path(), str(exe))

    def test_missing_env_path_falls_back(self):
        os.environ["FFMPEG_PATH"] = str(Path(self.temp_dir.name) / "missing")
        with patch("scanner.services.ffmpeg_tools.BUNDLED_BIN_DIR", Path(self.temp_dir.name)):
            self.assertEqual(ffmpeg_tools.resolve_ffmpeg_path(), "ffmpeg")

    @patch("scanner.services.ffmpeg_tools.platform.system", return_value="Windows")
    def test_bundled_binary_is_used(self, _platform_mock):
        bundled = Path(self.temp_dir.name) / "ffmpeg.exe"
        bundled.write_bytes(b"")
        with patch("scanner.services.ffmpeg_tools.BUNDLED_BIN_DIR", Path(self.temp_dir.name)):
            self.assertEqual(ffmpeg_tools.resolve_ffmpeg_path(), str(bundled))


@patch("scanner.services.ffmpeg_tools.resolve_ffmpeg_path", return_value="ffmpeg")
class CaptureCommandTests(unittest.TestCase):
    def setUp(self):
        self.constraints = VideoConstraints(width=1280, height=720, fps=30)

    def test_dshow_command(self, _resolve_mock):
        device = VideoDevice(id="video=HD Webcam", label="HD Webcam", backend="dshow")
        cmd = ffmpeg_tools.build_ffmpeg_capture_command(device, self.constraints)
        self.assertEqual(cmd[0], "ffmpeg")
        self.assertIn("-rtbufsize", cmd)
        self.assertEqual(cmd[cmd.index("-i") + 1], "video=HD Webcam")
        self.assertEqual(cmd[cmd.index("-video_size") + 1], "1280x720")
        self.assertIn("scale=1280:720:flags=fast_bilinear", cmd)
        self.assertEqual(cmd[-5:], ["-pix_fmt", "bgr24", "-f", "rawvideo", "pipe:1"])

    def test_v4l2_command_without_input_tuning(self, _resolve_mock):
        device = VideoDevice(id="/dev/video0", label="USB", backend="v4l2")
        cmd = ffmpeg_tools.build_ffmpeg_capture_command(device, self.constraints, allow_input_tuning=False)
        self.assertEqual(cmd[cmd.index("-f") + 1], "v4l2")
        self.assertNotIn("-video_size", cmd)
        self.assertNotIn("-framerate", cmd)
        self.assertNotIn("-rtbufsize", cmd)
        self.assertEqual(cmd[cmd.index("-i") + 1], "/dev/video0")

    def test_avfoundation_always_sets_framerate(self, _resolve_mock):
        device = VideoDevice(id="1", label="FaceTime", backend="avfoundation")
        cmd = ffmpeg_tools.build_ffmpeg_capture_command(device, self.constraints, allow_input_tuning=False)
        self.assertEqual(cmd[cmd.index("-framerate") + 1], "30")
        self.assertEqual(cmd[cmd.index("-i") + 1], "1:none")

    def test_debug_env_raises_loglevel(self, _resolve_mock):
        device = VideoDevice(id="/dev/video0", label="USB")
        with patch.dict(os.environ, {"FFMPEG_DEBUG": "1"}):
            cmd = ffmpeg_tools.build_ffmpeg_capture_command(device, self.constraints)
        self.assertEqual(cmd[cmd.index("-loglevel") + 1], "verbose")


class VideoConstraintsTests(unittest.TestCase):
    def test_frame_size_is_bgr24(self):
        self.assertEqual(VideoConstraints(width=4, height=2).frame_size, 24)
        self.assertEqual(VideoConstraints().facing_mode, "environment")


if __name__ == "__main__":
    unittest.main()
