"""Root conftest: puts the repository root on sys.path for ``main`` and ``ppg_pulse``."""
