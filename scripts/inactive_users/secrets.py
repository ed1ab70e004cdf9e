"""Cloud secret resolution for the client secret.

The ClientSecret setting may hold a reference instead of the secret itself:
  - "aws-secret://secret-name"         -> AWS Secrets Manager
  - "aws-secret://secret-name#key"     -> AWS Secrets Manager (JSON key)
  - "gcp-secret://project/secret/ver"  -> GCP Secret Manager
  - anything else                      -> used as-is
"""

from __future__ import annotations

import json
import logging
import os

from scripts.inactive_users.errors import ConfigurationError

logger = logging.getLogger("inactive_users.secrets")

_AWS_PREFIX = "aws-secret://"
_GCP_PREFIX = "gcp-secret://"


def resolve_secret(value: str) -> str:
    """Resolve a secret reference to its plaintext value."""
    if value.startswith(_AWS_PREFIX):
        return _resolve_aws_secret(value[len(_AWS_PREFIX):])
    if value.startswith(_GCP_PREFIX):
        return _resolve_gcp_secret(value[len(_GCP_PREFIX):])
    return value


def _resolve_aws_secret(ref: str) -> str:
    import boto3

    secret_name, _, json_key = ref.partition("#")
    region = os.environ.get("AWS_REGION", "us-east-1")
    client = boto3.client("secretsmanager", region_name=region)

    logger.info("Resolving client secret from AWS Secrets Manager (%s)", secret_name)
    secret_string = client.get_secret_value(SecretId=secret_name)["SecretString"]
    if not json_key:
        return secret_string

    data = json.loads(secret_string)
    if json_key not in data:
        raise ConfigurationError(f"Secret '{secret_name}' has no key '{json_key}'")
    return str(data[json_key])


def _resolve_gcp_secret(ref: str) -> str:
    """ref is a full resource name or a bare secret name (latest version)."""
    from google.cloud import secretmanager

    if ref.startswith("projects/"):
        name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID", "")
        if not project:
            raise ConfigurationError(
                "GCP_PROJECT_ID must be set to resolve a bare gcp-secret:// reference"
            )
        name = f"projects/{project}/secrets/{ref}/versions/latest"

    logger.info("Resolving client secret from GCP Secret Manager (%s)", name)
    client = secretmanager.SecretManagerServiceClient()
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")
