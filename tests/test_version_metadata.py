"""Version metadata consistency tests."""

from importlib.metadata import PackageNotFoundError, version

import bayesian_svar as bsvar


def test_dunder_version_matches_distribution_metadata() -> None:
    """__version__ と配布メタデータの整合性を保証する。"""
    try:
        dist_version = version("bsvar")
    except PackageNotFoundError:
        assert bsvar.__version__ == "0+unknown"
        return

    assert bsvar.__version__ == dist_version
