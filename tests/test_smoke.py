"""Minimal smoke tests for the scan orchestration packages."""


def test_packages_importable() -> None:
    """Ensure every subpackage imports without side effects."""
    import azqr.adapters  # noqa: F401
    import azqr.cli  # noqa: F401
    import azqr.models  # noqa: F401
    import azqr.normalization  # noqa: F401
    import azqr.pipeline  # noqa: F401
    import azqr.plugins  # noqa: F401
    import azqr.rules  # noqa: F401
    import azqr.scanners  # noqa: F401
    import azqr.service  # noqa: F401
