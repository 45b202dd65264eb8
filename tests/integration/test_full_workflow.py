"""Integration tests for the complete SVG to G-code workflow."""

import pytest

from usgcode.cli.main import main
from usgcode.core.config import Config
from usgcode.core.converter import SVGToGCodeConverter
from usgcode.core.error_handling import DimensionError, DrawingError
from usgcode.engine.base import ConversionEngine

SQUARE_SVG = """<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="100mm" height="100mm" viewBox="0 0 100 100">
  <rect id="square" x="0" y="0" width="100" height="100" stroke="black" fill="none"/>
</svg>"""


class RecordingEngine(ConversionEngine):
    """Engine stub returning fixed tokens and recording its inputs."""

    def __init__(self, tokens):
        self.tokens = tokens
        self.calls = []

    def convert(self, document, config, dimensions, machine):
        self.calls.append((document, config, dimensions, machine))
        return list(self.tokens)


class FailingEngine(ConversionEngine):
    """Engine stub that fails with an unexpected error."""

    def convert(self, document, config, dimensions, machine):
        raise RuntimeError("flattener exploded")


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Default configuration regardless of files on the test machine."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return Config()


@pytest.fixture
def square_svg(tmp_path):
    svg_path = tmp_path / "square.svg"
    svg_path.write_text(SQUARE_SVG)
    return svg_path


class TestConverterWithStubEngine:
    """Test the driver independently of path conversion."""

    def test_tokens_are_compacted_into_file(self, isolated_config, square_svg, tmp_path):
        engine = RecordingEngine(["G1", "X10.0", "Y20.0", ";comment", "G1", "F500"])
        converter = SVGToGCodeConverter(isolated_config, engine=engine)
        output = tmp_path / "out" / "square.gcode"

        result = converter.convert(square_svg, output, scale=2.0)

        assert output.read_text() == "\nG1 X10.0 Y20.0\nG1 F500"
        assert result.output_path == output
        assert result.token_count == 6
        assert result.line_count == 2
        assert result.dimensions.as_tuple() == (200.0, 200.0)

    def test_engine_receives_configuration(self, isolated_config, square_svg, tmp_path):
        engine = RecordingEngine([])
        converter = SVGToGCodeConverter(isolated_config, engine=engine)

        converter.convert(square_svg, tmp_path / "out.gcode")

        [(document, config, dimensions, machine)] = engine.calls
        assert document.get("width") == "100mm"
        assert config.tolerance == 0.001
        assert config.feedrate == 1000.0
        assert config.dpi == 100.0
        assert config.origin == (0.0, 0.0)
        assert dimensions.as_tuple() == (100.0, 100.0)
        assert machine.circular_interpolation is False
        assert machine.tool_on_sequence == ("M3", "G0", "Z0.0")
        assert machine.tool_off_sequence == ("M5", "G0", "Z3.0")

    def test_missing_height_gives_no_dimensions(self, isolated_config, tmp_path):
        svg_path = tmp_path / "nodims.svg"
        svg_path.write_text('<svg xmlns="http://www.w3.org/2000/svg" width="50mm"/>')
        engine = RecordingEngine([])

        result = SVGToGCodeConverter(isolated_config, engine=engine).convert(
            svg_path, tmp_path / "out.gcode", scale=3.0
        )

        assert result.dimensions is None
        assert engine.calls[0][2] is None

    def test_bad_dimension_stops_before_engine(self, isolated_config, tmp_path):
        svg_path = tmp_path / "bad.svg"
        svg_path.write_text(
            '<svg xmlns="http://www.w3.org/2000/svg" width="100%" height="auto"/>'
        )
        engine = RecordingEngine(["G1"])
        output = tmp_path / "out.gcode"

        with pytest.raises(DimensionError) as exc_info:
            SVGToGCodeConverter(isolated_config, engine=engine).convert(svg_path, output)

        assert exc_info.value.details["operation"] == "resolve dimensions"
        assert engine.calls == []
        assert not output.exists()

    def test_unreadable_drawing(self, isolated_config, tmp_path):
        converter = SVGToGCodeConverter(isolated_config, engine=RecordingEngine([]))

        with pytest.raises(DrawingError) as exc_info:
            converter.convert(tmp_path / "missing.svg", tmp_path / "out.gcode")

        assert exc_info.value.details["operation"] == "read drawing"


class TestFullPipeline:
    """Test the real engine end to end."""

    def test_square_at_double_scale(self, isolated_config, square_svg, tmp_path):
        output = tmp_path / "square.gcode"

        SVGToGCodeConverter(isolated_config).convert(square_svg, output, scale=2.0)

        content = output.read_text()
        lines = content.split("\n")
        assert lines[0] == ""
        assert lines[1:3] == ["G21", "G90"]
        assert "G0 X0.0 Y200.0" in lines
        assert "G1 X200.0 Y200.0 F1000.0" in lines
        assert "G1 X200.0 Y0.0" in lines
        assert not any(line.startswith(";") for line in lines)
        assert not content.endswith("\n")
        assert lines[-2:] == ["M5", "G0 Z3.0"]


class TestCommandLine:
    """Test the command line entry point."""

    def test_success_message(self, isolated_config, square_svg, tmp_path, capsys):
        output = tmp_path / "nested" / "square.gcode"

        exit_code = main([str(square_svg), str(output), "-s0.5", "-q"])

        assert exit_code == 0
        assert f"Successfully created gcode at: {output}" in capsys.readouterr().out
        assert "G1 X50.0 Y50.0 F1000.0" in output.read_text()

    def test_existing_output_replaced(self, isolated_config, square_svg, tmp_path):
        output = tmp_path / "square.gcode"
        output.write_text("stale")

        assert main([str(square_svg), str(output), "-q"]) == 0
        assert "stale" not in output.read_text()

    def test_missing_input_fails(self, isolated_config, tmp_path, capsys):
        exit_code = main([str(tmp_path / "missing.svg"), str(tmp_path / "o.gcode"), "-q"])

        assert exit_code == 1
        err = capsys.readouterr().err
        assert "read drawing failed" in err
        assert "Could not open svg file" in err

    def test_config_file_option(self, isolated_config, square_svg, tmp_path):
        config_file = tmp_path / "plotter.toml"
        config_file.write_text('[machine]\ntool_on_sequence = "M3 S255"\n')
        output = tmp_path / "square.gcode"

        assert main([str(square_svg), str(output), "-c", str(config_file), "-q"]) == 0
        # S is not an axis word, so it lands on its own line
        assert "\nM3\nS255\n" in output.read_text()

    def test_bad_config_reported(self, isolated_config, square_svg, tmp_path, capsys):
        config_file = tmp_path / "plotter.toml"
        config_file.write_text("[conversion]\nfeedrate = -5\n")

        assert main([str(square_svg), str(tmp_path / "o.gcode"), "-c", str(config_file)]) == 1
        assert "configuration failed" in capsys.readouterr().err

    @pytest.mark.parametrize("scale", ["0", "-1", "abc", "nan"])
    def test_invalid_scale_rejected(self, square_svg, tmp_path, scale):
        with pytest.raises(SystemExit) as exc_info:
            main([str(square_svg), str(tmp_path / "o.gcode"), f"--scale={scale}"])

        assert exc_info.value.code == 2

    def test_unexpected_engine_error_reported(
        self, isolated_config, square_svg, tmp_path, capsys, monkeypatch
    ):
        monkeypatch.setattr("usgcode.core.converter.SVGConversionEngine", FailingEngine)

        exit_code = main([str(square_svg), str(tmp_path / "o.gcode"), "-q"])

        assert exit_code == 1
        assert "❌ conversion failed: flattener exploded" in capsys.readouterr().err

    def test_zero_size_drawing_converts(self, isolated_config, tmp_path, capsys):
        svg_path = tmp_path / "zero.svg"
        svg_path.write_text(
            '<svg xmlns="http://www.w3.org/2000/svg" width="0mm" height="0mm" '
            'viewBox="0 0 10 10"><line x1="0" y1="0" x2="10" y2="10"/></svg>'
        )
        output = tmp_path / "zero.gcode"

        assert main([str(svg_path), str(output), "-q"]) == 0
        assert "G1 X" in output.read_text()
