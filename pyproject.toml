[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lagwatch_http"
version = "0.1.0"
description = "HTTP API for inspecting Kafka clusters, consumer groups, lag status and service configuration"
requires-python = ">=3.10"
dependencies = []
keywords = ["kafka", "consumer-lag", "monitoring", "http", "api"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lagwatch_http"]

[tool.pytest.ini_options]
addopts = "-ra"
