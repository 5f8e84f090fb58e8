import json


def test_cli_sources_lists_every_employer(capsys):
    from service import cli

    assert cli.main(["sources"]) == 0
    out, _ = capsys.readouterr()
    for name in ("Anthropic", "Zipline", "Wing", "Waymo", "Zoox", "AllTrails"):
        assert name in out


def test_cli_scrape_single_company(capsys):
    from service import cli

    rc = cli.main(["scrape", "--company", "waymo", "--skip-network"])
    assert rc == 0
    out, _ = capsys.readouterr()
    result = json.loads(out)
    assert result["target"] == "waymo"
    assert result["stats"]["newJobs"] == 2


def test_cli_scrape_unknown_company_fails(capsys):
    from service import cli

    rc = cli.main(["scrape", "--company", "nope"])
    assert rc == 1
    _, err = capsys.readouterr()
    assert "FAILURE" in err


def test_cli_sweep(capsys):
    from service import cli

    assert cli.main(["sweep", "--threshold-days", "3"]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["thresholdDays"] == 3
    assert result["closed"] == 0


def test_cli_run_prints_done_and_json(capsys):
    from service import cli

    rc = cli.main(["run", "modules.job_tracker", "--kwargs", 'company="zoox"', "--json"])
    assert rc == 0
    out, _ = capsys.readouterr()
    assert out.startswith("DONE: Scraping completed for zoox: 2 new, 0 updated, 0 errors")
    assert '"target": "zoox"' in out


def test_cli_run_bad_kwargs_is_a_usage_error():
    import argparse

    import pytest

    from service import cli

    with pytest.raises(argparse.ArgumentTypeError):
        cli.main(["run", "modules.job_tracker", "--kwargs", "novalue"])


def test_cli_config_store_failure_exit_code(capsys, monkeypatch):
    from service import cli

    monkeypatch.setenv("JOBTRACKER_STORE", "pocketbase")
    assert cli.main(["scrape"]) == 1
    assert "credentials" in capsys.readouterr().err


def test_cli_list_jobs_shows_defaults(capsys):
    from service import cli

    assert cli.main(["list-jobs"]) == 0
    out, _ = capsys.readouterr()
    assert "daily-scrape" in out and "daily-sweep" in out


def test_cli_list_jobs_and_validate_with_config(write_min_config, capsys):
    from service import cli

    assert cli.main(["list-jobs"]) == 0
    assert "scrape-never" in capsys.readouterr().out
    assert cli.main(["validate-config"]) == 0
    assert "OK" in capsys.readouterr().out


def test_cli_validate_config_rejects_bad_file(tmp_path, capsys):
    from service import cli

    bad = tmp_path / "bad.json"
    bad.write_text('{"jobs": [{"module": "m"}]}', encoding="utf-8")
    assert cli.main(["--config", str(bad), "validate-config"]) == 1
    assert "configuration invalid" in capsys.readouterr().err
