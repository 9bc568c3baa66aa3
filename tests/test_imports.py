def test_import_rpyflow_package() -> None:
    import importlib

    module = importlib.import_module("rpyflow.services")
    assert module is not None


def test_import_scanner_no_side_effects() -> None:
    from rpyflow.services.scanner import scan_source

    scanned = scan_source("game/empty.rpy", "")
    assert scanned.statements == []
    assert scanned.diagnostics == []
