from pathlib import Path

from click.testing import CliRunner

from openapi_tsgen.cli import main

FIXTURES = Path(__file__).parent / "fixtures"
ENV = {"OPENAPI_TSGEN_VERSION": "dev", "SOURCE_DATE_EPOCH": "1770744150"}


class TestCliGenerate:
    def test_generate(self, tmp_path):
        output_file = tmp_path / "api.ts"
        runner = CliRunner()
        result = runner.invoke(main, ["generate", str(FIXTURES / "basic.yaml"), "-o", str(output_file)], env=ENV)

        assert result.exit_code == 0, result.output
        assert "Types saved to" in result.output
        expected = (FIXTURES / "basic.snapshot.ts").read_text(encoding="utf-8")
        assert output_file.read_text(encoding="utf-8").rstrip() == expected.rstrip()

    def test_rerun_is_up_to_date(self, tmp_path):
        output_file = tmp_path / "api.ts"
        runner = CliRunner()
        args = ["generate", str(FIXTURES / "basic.yaml"), "-o", str(output_file)]
        runner.invoke(main, args, env=ENV)
        result = runner.invoke(main, args, env={"OPENAPI_TSGEN_VERSION": "dev", "SOURCE_DATE_EPOCH": "0"})

        assert result.exit_code == 0
        assert "is up to date" in result.output
        assert "2026-02-10T17:22:30Z" in output_file.read_text(encoding="utf-8")

    def test_verbose(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            main, ["-v", "generate", str(FIXTURES / "basic.yaml"), "-o", str(tmp_path / "api.ts")], env=ENV
        )
        assert result.exit_code == 0

    def test_unresolved_reference(self, tmp_path):
        output_file = tmp_path / "broken.ts"
        runner = CliRunner()
        result = runner.invoke(main, ["generate", str(FIXTURES / "broken.yaml"), "-o", str(output_file)])

        assert result.exit_code == 1
        assert "unresolved reference" in result.output
        assert not output_file.exists()

    def test_wrong_format(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            main, ["generate", str(FIXTURES / "basic.yaml"), "-o", str(tmp_path / "x.ts"), "--format", "json"]
        )
        assert result.exit_code == 1
        assert "cannot parse json" in result.output

    def test_invalid_epoch(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["generate", str(FIXTURES / "basic.yaml"), "-o", str(tmp_path / "x.ts")],
            env={"SOURCE_DATE_EPOCH": "yesterday"},
        )
        assert result.exit_code == 1
        assert "invalid generator settings" in result.output
        assert not (tmp_path / "x.ts").exists()

    def test_missing_input(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["generate", str(tmp_path / "nope.yaml"), "-o", str(tmp_path / "x.ts")])
        assert result.exit_code != 0


class TestCliBatch:
    def test_failure_isolated(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "batch", str(FIXTURES / "broken.yaml"), str(FIXTURES / "basic.yaml"), str(FIXTURES / "maps.yaml"),
            "-d", str(tmp_path / "out"),
        ], env=ENV)

        assert result.exit_code == 1
        assert "FAILED" in result.output
        assert "Generated 2 of 3 modules" in result.output
        assert (tmp_path / "out" / "basic.ts").exists()
        assert (tmp_path / "out" / "maps.ts").exists()
        assert not (tmp_path / "out" / "broken.ts").exists()

    def test_all_succeed(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "batch", str(FIXTURES / "params.yaml"), str(FIXTURES / "security.json"),
            "-d", str(tmp_path),
        ], env=ENV)

        assert result.exit_code == 0, result.output
        assert "Generated 2 of 2 modules" in result.output
        assert (tmp_path / "security.ts").exists()

    def test_undecodable_document_isolated(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_bytes(b"openapi: 3.1.0\ninfo: \xff\n")
        runner = CliRunner()
        result = runner.invoke(main, [
            "batch", str(bad), str(FIXTURES / "basic.yaml"), "-d", str(tmp_path / "out"),
        ], env=ENV)

        assert result.exit_code == 1
        assert "cannot read file" in result.output
        assert "Generated 1 of 2 modules" in result.output
        assert (tmp_path / "out" / "basic.ts").exists()

    def test_shared_output_name(self, tmp_path):
        text = (FIXTURES / "basic.yaml").read_text(encoding="utf-8")
        for name in ("a", "b"):
            (tmp_path / name).mkdir()
            (tmp_path / name / "api.yaml").write_text(text, encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, [
            "batch", str(tmp_path / "a" / "api.yaml"), str(tmp_path / "b" / "api.yaml"),
            str(FIXTURES / "maps.yaml"), "-d", str(tmp_path / "out"),
        ], env=ENV)

        assert result.exit_code == 1
        assert result.output.count("FAILED") == 2
        assert "is also the output of" in result.output
        assert not (tmp_path / "out" / "api.ts").exists()
        assert (tmp_path / "out" / "maps.ts").exists()
