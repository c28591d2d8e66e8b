from __future__ import annotations
import imaplib
import ssl
from contextlib import contextmanager
from typing import Iterator

from loguru import logger

from qumail.application.ports.email_source import RawMailCredentials
from qumail.domain.errors import RawMailUnavailable


class ImapAuthenticator:
    """
    Responsible ONLY for establishing an authenticated IMAP connection.
    No folder logic, no fetching, no parsing.
    """

    def __init__(self, creds: RawMailCredentials, timeout: float = 30.0) -> None:
        self.creds = creds
        self.timeout = timeout

    def login(self) -> imaplib.IMAP4:
        """
        Returns an authenticated IMAP4/IMAP4_SSL connection.
        Connect failures are 'unreachable', rejected logins are 'auth'.
        """
        creds = self.creds
        try:
            if creds.use_tls:
                conn = imaplib.IMAP4_SSL(
                    host=creds.host,
                    port=creds.port,
                    ssl_context=ssl.create_default_context(),
                    timeout=self.timeout,
                )
            else:
                conn = imaplib.IMAP4(host=creds.host, port=creds.port, timeout=self.timeout)
        except (OSError, imaplib.IMAP4.error) as e:
            logger.warning(f"IMAP connect to {creds.host}:{creds.port} failed: {e}")
            raise RawMailUnavailable("unreachable", details=str(e)) from e

        try:
            conn.login(creds.username, creds.secret)
        except imaplib.IMAP4.abort as e:
            _logout(conn)
            raise RawMailUnavailable("unreachable", details=str(e)) from e
        except imaplib.IMAP4.error as e:
            _logout(conn)
            logger.warning(f"IMAP login rejected for {creds.username}@{creds.host}")
            raise RawMailUnavailable("auth", details=str(e)) from e
        except OSError as e:
            _logout(conn)
            raise RawMailUnavailable("unreachable", details=str(e)) from e
        return conn


def _logout(conn: imaplib.IMAP4) -> None:
    try:
        conn.logout()
    except (imaplib.IMAP4.error, OSError) as e:
        logger.debug(f"IMAP logout failed: {e}")


@contextmanager
def mailbox_session(
    creds: RawMailCredentials,
    folder: str = "INBOX",
    timeout: float = 30.0,
) -> Iterator[imaplib.IMAP4]:
    """connect -> select (read-only) -> yield -> close -> logout, on every exit path."""
    conn = ImapAuthenticator(creds, timeout=timeout).login()
    selected = False
    try:
        try:
            typ, _ = conn.select(folder, readonly=True)
        except (imaplib.IMAP4.error, OSError) as e:
            raise RawMailUnavailable("unreachable", details=f"SELECT {folder}: {e}") from e
        if typ != "OK":
            raise RawMailUnavailable("unreachable", details=f"Failed to select folder {folder}")
        selected = True
        yield conn
    finally:
        if selected:
            try:
                conn.close()
            except (imaplib.IMAP4.error, OSError) as e:
                logger.debug(f"IMAP close failed: {e}")
        _logout(conn)
