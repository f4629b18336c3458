[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "realmrelay"
version = "2.9.2"
description = "Relay configuration, load balancing and command-line front end"
requires-python = ">=3.11"
keywords = ["relay", "proxy", "port-forward", "load-balance", "configuration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: System :: Networking",
]
dependencies = [
    "dnspython",
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
realm = "realmrelay.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["realmrelay"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
