# gdrive_auth.py
import logging
import os
from google.oauth2 import service_account

# Read-only access is all the gallery needs
SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]


def load_service_account_credentials(key_file: str, scopes=None):
    """
    Loads the service account credentials used to call the Google Drive API.

    :param key_file: Path to the service account JSON key file.
    :param scopes: OAuth scopes to request, read-only Drive access by default.
    :return: google.oauth2.service_account.Credentials
    """
    if not os.path.exists(key_file):
        raise FileNotFoundError(f"Service account key file not found: {key_file}")

    creds = service_account.Credentials.from_service_account_file(
        key_file, scopes=scopes or SCOPES
    )
    logging.info(f"Loaded service account credentials for {creds.service_account_email}")
    return creds
