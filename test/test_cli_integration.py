import pytest
import subprocess
import sys
import shutil
import os

import cv2
import numpy as np


def base_command():
    executable = shutil.which("image_comparator")
    if not executable:
        # Fallback to sys.executable -m image_comparator.main if command not found
        return [sys.executable, "-m", "image_comparator.main"]
    return [executable]


def write_png(path, rgba):
    assert cv2.imwrite(str(path), cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))
    return str(path)


def test_cli_help():
    result = subprocess.run(base_command() + ["--help"], capture_output=True, text=True)
    assert result.returncode == 0
    assert "usage:" in result.stdout
    assert "Pixel-level Image Comparator" in result.stdout


def test_cli_headless_comparison(tmp_path):
    a = np.zeros((2, 2, 4), dtype=np.uint8)
    a[..., 3] = 255
    b = a.copy()
    b[1, 1] = (255, 255, 255, 255)
    first = write_png(tmp_path / "a.png", a)
    second = write_png(tmp_path / "b.png", b)
    outfile = tmp_path / "overlay.png"

    cmd = base_command() + [first, second, "--no-base-image", "-o", str(outfile)]
    result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)

    assert result.returncode == 0, result.stderr
    assert "Similarity: 75.00%" in result.stdout
    assert "Difference: 25.00%" in result.stdout
    assert os.path.exists(outfile)

    overlay = cv2.imread(str(outfile), cv2.IMREAD_UNCHANGED)
    assert overlay.shape == (2, 2, 4)
    # BGRA on disk
    assert tuple(overlay[0, 0]) == (0, 255, 0, 255)
    assert tuple(overlay[1, 1]) == (0, 0, 255, 255)


def test_cli_headless_requires_two_images(tmp_path):
    cmd = base_command() + [str(tmp_path / "a.png"), "-o", str(tmp_path / "out.png")]
    result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
    assert result.returncode == 1
    assert "Two input images are required" in result.stdout


def test_cli_headless_bad_input(tmp_path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"nope")
    cmd = base_command() + [str(bad), str(bad), "-o", str(tmp_path / "out.png")]
    result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
    assert result.returncode == 1
    assert "Error comparing images" in result.stdout


def test_cli_log_file(tmp_path):
    rgba = np.full((2, 2, 4), 200, dtype=np.uint8)
    first = write_png(tmp_path / "a.png", rgba)
    second = write_png(tmp_path / "b.png", rgba)
    log_file = tmp_path / "compare.log"

    cmd = base_command() + [first, second, "-o", str(tmp_path / "out.png"),
                            "-v", "--log-file", str(log_file)]
    result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)

    assert result.returncode == 0, result.stderr
    assert "Similarity: 100.00%" in result.stdout
    assert "image_comparator.raster" in log_file.read_text()
