pytest_plugins = [
    "tests.fixtures.aws_fixtures",
    "tests.fixtures.connection_fixtures",
]
