pytest_plugins = ["reviewbot.testing.conftest"]
