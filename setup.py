from pathlib import Path
from setuptools import find_packages, setup


def read_requirements() -> list[str]:
    req_path = Path(__file__).parent / "requirements.txt"
    if not req_path.exists():
        return []
    return [line.strip() for line in req_path.read_text(encoding="utf-8").splitlines() if line.strip() and not line.startswith("#")]


setup(
    name="copy-compliance",
    version="0.1.0",
    description="Two-stage compliance gate (rule scan + semantic review) for healthcare ad copy",
    packages=find_packages(include=["copy_compliance", "copy_compliance.*"]),
    py_modules=["compliance_check"],
    install_requires=read_requirements(),
    extras_require={"test": ["pytest>=7", "httpx>=0.24"]},
    python_requires=">=3.10",
    include_package_data=True,
)
