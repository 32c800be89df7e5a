"""
Integration tests for the cached extraction pipeline and the command line.
"""
import json
import os
import time
from unittest.mock import patch

import numpy as np
import pytest
from loguru import logger

from calpalette.cli import expand_sources, main
from calpalette.errors import InputError, SourceUnavailableError
from calpalette.services.cache import NullRecordStore
from calpalette.services.colors.palette import PixelBuffer, build_palette
from calpalette.services.extraction import (
    extract_dominant_colors, get_main_colors, make_cache, summarize
)
from calpalette.services.observability import get_metrics_collector
from calpalette.utils.logging import configure_logging

STRIPE_COLORS = ["ff0000", "00ff00", "0000ff"]


class TestExtractDominantColors:
    """Test the in-memory pipeline"""

    def test_two_by_two_buffer(self):
        """Test the hex result for a tiny buffer"""
        buffer = PixelBuffer.from_sequence(2, 2, [(255, 0, 0), (255, 0, 0), (0, 0, 255), (0, 255, 0)])
        assert extract_dominant_colors(buffer, count=3) == STRIPE_COLORS

    def test_count_limits_result(self):
        """Test only the requested number of colors is returned"""
        buffer = PixelBuffer.from_sequence(2, 2, [(255, 0, 0), (255, 0, 0), (0, 0, 255), (0, 255, 0)])
        assert extract_dominant_colors(buffer, count=1) == ["ff0000"]

    def test_records_stage_metrics(self):
        """Test palette building and selection are timed"""
        buffer = PixelBuffer.from_sequence(1, 1, [(1, 2, 3)])
        extract_dominant_colors(buffer, count=2)

        collector = get_metrics_collector()
        assert collector.get_operation_stats("palette_building")["total_calls"] == 1
        assert collector.get_operation_stats("dominant_color_selection")["total_calls"] == 1

    def test_empty_buffer(self):
        """Test empty input propagates InputError"""
        with pytest.raises(InputError):
            extract_dominant_colors(PixelBuffer.from_sequence(0, 0, []), count=3)


class TestGetMainColors:
    """Test the cached entry point on real image files"""

    def test_striped_photo(self, write_image, striped_image):
        """Test dominant red first, then the colors farthest from it"""
        path = write_image(striped_image)
        assert get_main_colors(path, count=5) == STRIPE_COLORS

    def test_second_call_served_from_cache(self, write_image, striped_image):
        """Test the palette is built once across two calls"""
        path = write_image(striped_image)
        cache = make_cache(count=5)

        with patch("calpalette.services.extraction.build_palette", wraps=build_palette) as spy:
            first = get_main_colors(path, count=5, cache=cache)
            second = get_main_colors(path, count=5, cache=cache)

        assert first == second == STRIPE_COLORS
        assert spy.call_count == 1
        assert path.with_suffix(".colors").exists()

    def test_modified_photo_recomputed(self, write_image, striped_image):
        """Test replacing the photo invalidates the cached colors"""
        path = write_image(striped_image)
        assert get_main_colors(path, count=5)[0] == "ff0000"

        write_image(np.full((10, 10, 3), (0, 0, 255), dtype=np.uint8))
        now = time.time()
        os.utime(path, (now + 5, now + 5))

        assert get_main_colors(path, count=5) == ["0000ff"]

    def test_without_cache(self, write_image, striped_image):
        """Test the null store writes nothing"""
        path = write_image(striped_image)
        cache = make_cache(count=5, store=NullRecordStore())

        assert get_main_colors(path, count=5, cache=cache) == STRIPE_COLORS
        assert not path.with_suffix(".colors").exists()

    def test_missing_photo(self, tmp_path):
        """Test missing photos raise with their path"""
        with pytest.raises(SourceUnavailableError, match="gone.png"):
            get_main_colors(tmp_path / "gone.png", count=3)

    @pytest.mark.parametrize("settings", [
        {"count": 3},
        {"bits": 2},
        {"metric": "cie76"},
        {"sample_width": 0},
    ])
    def test_settings_must_match_cache(self, write_image, striped_image, settings):
        """A cache tagged for other settings is rejected instead of serving or storing wrong results"""
        path = write_image(striped_image)
        cache = make_cache(count=5)
        arguments = {"count": 5, **settings}

        with patch("calpalette.services.extraction.load_pixel_buffer") as decode:
            with pytest.raises(InputError, match="photo.png"):
                get_main_colors(path, cache=cache, **arguments)

        assert decode.call_count == 0
        assert not path.with_suffix(".colors").exists()

    def test_bits_change_not_served_stale(self, write_image, striped_image):
        """Results for different quantization depths never share a record"""
        path = write_image(striped_image)
        coarse = get_main_colors(path, count=5, bits=2)

        with patch("calpalette.services.extraction.build_palette", wraps=build_palette) as spy:
            fine = get_main_colors(path, count=5, bits=8)

        assert spy.call_count == 1
        assert spy.call_args.kwargs["bits"] == 8
        assert len(coarse) == len(fine) == 3

    def test_extraction_logged_with_source(self, write_image, striped_image):
        """Extraction log records carry the source path as structured data"""
        path = write_image(striped_image)
        configure_logging("DEBUG")
        records = []
        sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
        try:
            get_main_colors(path, count=3)
        finally:
            logger.remove(sink_id)

        extracting = [r for r in records if r["message"].startswith("Extracting")]
        assert len(extracting) == 1
        assert extracting[0]["extra"]["source"] == str(path)

    def test_summarize(self, write_image, striped_image):
        """Test the page summary carries the primary color"""
        path = write_image(striped_image)
        summary = summarize(path, count=2)

        assert summary.colors == ["ff0000", "00ff00"]
        assert summary.color == "ff0000"
        assert summary.source == str(path)


class TestCommandLine:
    """Test the batch command line"""

    def test_prints_json_lines(self, write_image, striped_image, capsys):
        """Test one JSON summary per image and exit status 0"""
        path = write_image(striped_image)

        assert main([str(path), "--count", "3"]) == 0

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        result = json.loads(lines[0])
        assert result == {"source": str(path), "colors": STRIPE_COLORS, "color": "ff0000"}

    def test_failed_image_reported_and_skipped(self, write_image, striped_image, tmp_path, capsys):
        """Test failures name the image, others still succeed, exit status 1"""
        good = write_image(striped_image)
        missing = tmp_path / "missing.png"

        assert main([str(missing), str(good), "--no-cache"]) == 1

        lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
        assert lines[0]["source"] == str(missing)
        assert lines[0]["error"] == "SourceUnavailableError"
        assert lines[1]["colors"] == STRIPE_COLORS
        assert not good.with_suffix(".colors").exists()

    def test_cache_root_option(self, write_image, striped_image, tmp_path, capsys):
        """Test records go to the cache root directory"""
        path = write_image(striped_image)
        root = tmp_path / "cache"

        assert main([str(path), "--cache-root", str(root)]) == 0
        assert len(list(root.glob("*.colors"))) == 1
        assert not path.with_suffix(".colors").exists()

    def test_parallel_workers_keep_input_order(self, write_image, striped_image, tmp_path, capsys):
        """Test --workers fans out over processes and prints results in argument order"""
        flipped = write_image(np.ascontiguousarray(striped_image[:, ::-1]), "flipped.png")
        original = write_image(striped_image, "original.png")
        missing = tmp_path / "missing.png"

        assert main([str(flipped), str(missing), str(original), "--workers", "2"]) == 1

        lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
        assert [line["source"] for line in lines] == [str(flipped), str(missing), str(original)]
        assert lines[0]["colors"] == STRIPE_COLORS
        assert lines[1]["error"] == "SourceUnavailableError"
        assert lines[2]["colors"] == STRIPE_COLORS
        assert flipped.with_suffix(".colors").exists()
        assert original.with_suffix(".colors").exists()

    def test_parallel_workers_success(self, write_image, striped_image, capsys):
        """Test exit status 0 when every image succeeds in parallel"""
        first = write_image(striped_image, "first.png")
        second = write_image(striped_image, "second.png")

        assert main([str(first), str(second), "-w", "2", "--no-cache"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert [json.loads(line)["source"] for line in lines] == [str(first), str(second)]

    def test_invalid_count(self, write_image, striped_image):
        """Test out-of-range counts are rejected"""
        assert main([str(write_image(striped_image)), "--count", "0"]) == 2

    def test_directory_expansion(self, write_image, striped_image, tmp_path):
        """Test directories expand to their supported images"""
        first = write_image(striped_image, "a.png")
        second = write_image(striped_image, "b.PNG")
        (tmp_path / "notes.txt").write_text("not an image")

        assert expand_sources([str(tmp_path)]) == [str(first), str(second)]
        assert expand_sources(["x.jpg"]) == ["x.jpg"]
