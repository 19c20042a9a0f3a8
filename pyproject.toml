[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tokenoracle"
version = "0.1.0"
description = "Token feature scoring, anomaly detection, market regime tracking, decision ledger and RPC endpoint health for a trading oracle"
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = [
    "trading",
    "oracle",
    "token",
    "anomaly-detection",
    "circuit-breaker",
    "market-regime",
    "sqlite",
]
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
    "Framework :: AsyncIO",
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["tokenoracle"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
