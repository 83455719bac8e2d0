# tests/test_main.py

import main
from auto_apply.application_queue import ApplicationQueue


def test_parse_args_defaults():
    args = main.parse_args(["https://jobs.lever.co/acme/1"])
    assert args.urls == ["https://jobs.lever.co/acme/1"]
    assert not args.dry_run
    assert not args.generate_only
    assert args.documents is None


def test_parse_args_flags():
    args = main.parse_args(
        ["--dry-run", "-f", "urls.txt", "--documents", "cover-letter", "--output-dir", "out"]
    )
    assert args.dry_run
    assert args.file == "urls.txt"
    assert args.documents == "cover-letter"
    assert args.output_dir == "out"


def test_platforms_listing(capsys):
    assert main.main(["--platforms"]) == 0
    assert "greenhouse" in capsys.readouterr().out


async def test_queue_status_without_saved_queue(settings, capsys):
    args = main.parse_args(["--queue-status"])
    assert await main.run(args, settings) == 0
    assert "No saved queue." in capsys.readouterr().out


async def test_queue_status_with_saved_queue(settings, capsys):
    queue = ApplicationQueue(settings.paths.queue_file)
    queue.add("https://jobs.lever.co/acme/1")
    queue.persist()

    assert await main.run(main.parse_args(["--queue-status"]), settings) == 0
    assert '"pending": 1' in capsys.readouterr().out


async def test_no_urls_is_a_usage_error(settings):
    assert await main.run(main.parse_args([]), settings) == 2
