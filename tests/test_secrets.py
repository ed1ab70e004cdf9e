"""Tests for client secret reference resolution."""

from __future__ import annotations

import json
import sys
from unittest.mock import MagicMock, patch

import pytest

from scripts.inactive_users.errors import ConfigurationError
from scripts.inactive_users.secrets import resolve_secret


def _fake_boto3(secret_string: str) -> MagicMock:
    boto3 = MagicMock()
    boto3.client.return_value.get_secret_value.return_value = {"SecretString": secret_string}
    return boto3


class TestResolveSecret:
    def test_literal_returned_unchanged(self) -> None:
        assert resolve_secret("plain-secret") == "plain-secret"

    def test_aws_secret_string(self) -> None:
        boto3 = _fake_boto3("s3cr3t")
        with patch.dict(sys.modules, {"boto3": boto3}):
            assert resolve_secret("aws-secret://auth0-m2m") == "s3cr3t"
        boto3.client.return_value.get_secret_value.assert_called_once_with(SecretId="auth0-m2m")

    def test_aws_secret_json_key(self) -> None:
        boto3 = _fake_boto3(json.dumps({"client_secret": "abc"}))
        with patch.dict(sys.modules, {"boto3": boto3}):
            assert resolve_secret("aws-secret://auth0-m2m#client_secret") == "abc"

    def test_aws_secret_missing_key(self) -> None:
        boto3 = _fake_boto3(json.dumps({"other": "abc"}))
        with patch.dict(sys.modules, {"boto3": boto3}):
            with pytest.raises(ConfigurationError):
                resolve_secret("aws-secret://auth0-m2m#client_secret")

    def test_bare_gcp_secret_needs_project(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
        secretmanager = MagicMock()
        cloud = MagicMock(secretmanager=secretmanager)
        with patch.dict(sys.modules, {"google": MagicMock(cloud=cloud), "google.cloud": cloud,
                                      "google.cloud.secretmanager": secretmanager}):
            with pytest.raises(ConfigurationError):
                resolve_secret("gcp-secret://auth0-m2m")
