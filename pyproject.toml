[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "staking_rewards"
version = "0.1.0"
description = "Staking reward pools, mining accounts, reward arithmetic and instruction encoding for a token rewards program"
requires-python = ">=3.10"
dependencies = []
keywords = ["staking", "rewards", "borsh", "mining", "reward-pool", "program-derived-address"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Office/Business :: Financial",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["staking_rewards"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
