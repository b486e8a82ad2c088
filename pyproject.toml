[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rsyncuptime"
version = "0.1.0"
description = "Uptime monitor for rsync server modules, with a JSON status API and a terminal dashboard"
requires-python = ">=3.10"
dependencies = []
keywords = ["rsync", "mirror", "uptime", "monitoring", "status", "dashboard"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Archiving :: Mirroring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rsyncuptime-server = "rsyncuptime.server:main"
rsyncuptime-tui = "rsyncuptime.tui:main"

[tool.hatch.build.targets.wheel]
packages = ["rsyncuptime"]

[tool.pytest.ini_options]
addopts = "-ra"
