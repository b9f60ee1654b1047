from __future__ import annotations

from pathlib import Path

from setuptools import find_packages, setup


def _read_requirements() -> list[str]:
    requirements_path = Path(__file__).with_name("requirements.txt")
    if not requirements_path.exists():
        return []
    return [line.strip() for line in requirements_path.read_text(encoding="utf-8").splitlines() if line.strip() and not line.startswith("#")]


setup(
    name="recoledger",
    version="0.1.0",
    description="Multi-tenant order ledger reconciliation for marketplace sales, payment, gst and refund reports",
    author="RecoLedger",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=_read_requirements(),
    extras_require={"test": ["pytest>=7"]},
    include_package_data=True,
    entry_points={
        "console_scripts": [
            "recoledger-ingest=recoledger.pipeline:main",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
