from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from repo_digest import logging as repo_logging

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_setup_logging_does_not_reconfigure_without_force(mocker: MockerFixture) -> None:
    mocker.patch.object(repo_logging, "_LOGGING_CONFIGURED", True)
    basic_config = mocker.patch.object(logging, "basicConfig")
    configure = mocker.patch.object(repo_logging.structlog, "configure")

    repo_logging.setup_logging()

    basic_config.assert_not_called()
    configure.assert_not_called()


@pytest.mark.unit
def test_setup_logging_first_call_keeps_host_handlers(mocker: MockerFixture) -> None:
    mocker.patch.object(repo_logging, "_LOGGING_CONFIGURED", False)
    basic_config = mocker.patch.object(logging, "basicConfig")
    mocker.patch.object(repo_logging.structlog, "configure")

    repo_logging.setup_logging()

    assert basic_config.call_args.kwargs["force"] is False
    assert basic_config.call_args.kwargs["level"] == logging.INFO


@pytest.mark.unit
def test_setup_logging_force_replaces_configuration(mocker: MockerFixture) -> None:
    mocker.patch.object(repo_logging, "_LOGGING_CONFIGURED", True)
    basic_config = mocker.patch.object(logging, "basicConfig")
    mocker.patch.object(repo_logging.structlog, "configure")

    repo_logging.setup_logging(debug=True, force=True)

    assert basic_config.call_args.kwargs["force"] is True
    assert basic_config.call_args.kwargs["level"] == logging.DEBUG
