[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "perpvamm"
version = "0.1.0"
description = "An in-memory perpetual futures exchange priced by a virtual AMM, with margin, funding and liquidation rules."
requires-python = ">=3.10"
dependencies = []
keywords = ["perpetuals", "vamm", "amm", "derivatives", "margin", "funding-rate", "liquidation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["perpvamm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
