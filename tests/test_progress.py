from pandock.progress import RichProgressHandler


def test_bars_are_stopped_when_all_tasks_complete() -> None:
    handler = RichProgressHandler()

    handler.on_download("pandoc.tar.gz", 512, 1024)
    handler.on_extract("pandoc.tar.gz", 1, 2)
    assert set(handler._bars) == {"download", "extract"}

    handler.on_download("pandoc.tar.gz", 1024, 1024)
    assert set(handler._bars) == {"extract"}

    handler.on_extract("pandoc.tar.gz", 2, 2)
    assert handler._bars == {}


def test_close_stops_unknown_size_downloads() -> None:
    handler = RichProgressHandler()
    handler.on_download("typst.tar.xz", 4096, None)

    handler.close()

    assert handler._bars == {}
    assert handler._tasks == {}
