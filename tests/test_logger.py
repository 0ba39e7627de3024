from sf_broker.logger import getLogger, pkg_root


def test_logger_creation():
    logger = getLogger(None)
    assert logger == pkg_root
    assert pkg_root.name == "sf_broker"

    child_logger = getLogger("auth")
    assert child_logger.name == "sf_broker.auth"
    assert child_logger.parent == pkg_root
