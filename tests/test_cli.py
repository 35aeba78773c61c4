"""CLI tests, calling main() with an argv list and reading stdout via capsys."""

import json

import pytest

from mnemonic_otp import validate_code
from mnemonic_otp.otp_cli import EXIT_INVALID, EXIT_OK, EXIT_USAGE, build_parser, main


class TestGenerateCommand:

    def test_generate_default(self, capsys):
        assert main(["generate"]) == EXIT_OK
        out = capsys.readouterr().out
        code = out.split()[0]
        assert validate_code(code)
        assert "entropy=20 bits" in out

    def test_generate_json_count(self, capsys):
        assert main(["generate", "--pool", "strong", "--count", "3", "--json"]) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert len(data) == 3
        assert all(len(item["code"]) == 8 for item in data)
        assert all(item["entropy_bits"] == 36 for item in data)

    def test_generate_with_binding(self, capsys):
        argv = ["generate", "--template", "ABCABC", "--secret", "s3cret",
                "--meta", '{"email": "a@b.c"}', "--encoding", "base64url", "--json"]
        assert main(argv) == EXIT_OK
        item = json.loads(capsys.readouterr().out)[0]
        assert validate_code(item["code"], templates=["ABCABC"], secret="s3cret",
                             meta={"email": "a@b.c"}, stored_digest=item["digest"],
                             digest_encoding="base64url")

    def test_generate_bad_template(self, capsys):
        assert main(["generate", "--template", "AB1"]) == EXIT_USAGE
        assert "letters A-Z" in capsys.readouterr().err

    def test_generate_bad_meta(self, capsys):
        assert main(["generate", "--secret", "s", "--meta", "{nope"]) == EXIT_USAGE
        assert "--meta" in capsys.readouterr().err


class TestValidateCommand:

    def test_valid(self, capsys):
        assert main(["validate", "--code", "k7qk7q", "--template", "ABCABC"]) == EXIT_OK
        assert "VALID" in capsys.readouterr().out

    def test_invalid(self, capsys):
        assert main(["validate", "--code", "ZZZZZX", "--template", "ABCABC"]) == EXIT_INVALID
        assert "INVALID" in capsys.readouterr().out

    def test_digest_roundtrip(self, capsys):
        main(["generate", "--secret", "s3cret", "--meta", '{"n": 1}', "--json"])
        item = json.loads(capsys.readouterr().out)[0]
        base = ["validate", "--code", item["code"], "--secret", "s3cret", "--digest", item["digest"]]
        assert main(base + ["--meta", '{"n": 1}']) == EXIT_OK
        assert main(base + ["--meta", '{"n": 2}']) == EXIT_INVALID

    def test_digest_without_secret(self, capsys):
        assert main(["validate", "--code", "123123", "--digest", "00"]) == EXIT_USAGE
        assert "secret" in capsys.readouterr().err


class TestInfoCommands:

    def test_entropy(self, capsys):
        assert main(["entropy"]) == EXIT_OK
        assert capsys.readouterr().out.startswith("20 bits")

    def test_entropy_custom(self, capsys):
        assert main(["entropy", "--template", "ABC", "--alphabet", "0123456789"]) == EXIT_OK
        assert capsys.readouterr().out.startswith("9 bits (alphabet of 10 symbols)")

    def test_entropy_bad_alphabet(self, capsys):
        assert main(["entropy", "--alphabet", "00"]) == EXIT_USAGE

    def test_templates(self, capsys):
        assert main(["templates"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "default (20 bits): ABCABC AAABBB ABABAB ABCDAB ABCCBA" in out
        assert "strong (36 bits)" in out

    def test_no_command(self, capsys):
        assert main([]) == EXIT_USAGE

    @pytest.mark.parametrize("count", ["0", "-2", "two"])
    def test_count_must_be_positive(self, count, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["generate", "--count", count])
        assert exc.value.code == EXIT_USAGE
        assert "--count" in capsys.readouterr().err

    def test_unknown_pool_rejected_by_argparse(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["generate", "--pool", "weak"])


def test_verbose_flag_enables_debug_logging(capsys):
    assert main(["--verbose", "generate", "--template", "ABCABC"]) == EXIT_OK
    captured = capsys.readouterr()
    assert validate_code(captured.out.split()[0], templates=["ABCABC"])
