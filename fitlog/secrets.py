import os

import boto3
from botocore.exceptions import ClientError

AWS_DEFAULT_REGION = os.getenv("AWS_DEFAULT_REGION", "us-east-1")


class SecretNotAvailable(Exception):
    """
    Raised when a secret cannot be read from AWS Secrets Manager
    """


def get_secret(secret_name):
    """
    Return the value of the named secret from AWS Secrets Manager.

    String secrets are returned as ``str``, binary secrets as ``bytes``.

    Raises:
        SecretNotAvailable: If the secret is missing or the request is rejected.
    """
    session = boto3.session.Session()
    client = session.client(
        service_name="secretsmanager",
        region_name=AWS_DEFAULT_REGION,
        endpoint_url="https://secretsmanager.%s.amazonaws.com" % AWS_DEFAULT_REGION,
    )

    try:
        response = client.get_secret_value(SecretId=secret_name)
    except ClientError as e:
        code = e.response["Error"]["Code"]
        if code == "ResourceNotFoundException":
            raise SecretNotAvailable(
                "The requested secret %s was not found" % secret_name
            ) from e
        raise SecretNotAvailable(
            "Reading secret %s failed with %s" % (secret_name, code)
        ) from e

    if "SecretString" in response:
        return response["SecretString"]
    return response["SecretBinary"]
