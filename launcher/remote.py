# launcher/remote.py
import os
import socket
import logging

import paramiko

from launcher.errors import ConfigError

log = logging.getLogger("launcher.remote")


class SSHProbe:
    """
    Checks whether a booted instance accepts SSH logins.

    Connection problems never raise: an instance that refuses, times out or
    rejects the key is simply not ready yet. A key file that cannot be read
    is a local misconfiguration and does raise.
    """

    def __init__(self, user="ubuntu", key_path=None, port=22, timeout=10, use_private_ip=False):
        self.user = user
        self.key_path = os.path.expanduser(key_path) if key_path else None
        if self.key_path and not (os.path.isfile(self.key_path) and os.access(self.key_path, os.R_OK)):
            raise ConfigError(f"SSH key {self.key_path} is not a readable file")
        self.port = port
        self.timeout = timeout
        self.use_private_ip = use_private_ip

    def create_client(self, host):
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            host,
            port=self.port,
            username=self.user,
            key_filename=self.key_path,
            timeout=self.timeout,
            banner_timeout=self.timeout,
            auth_timeout=self.timeout,
        )
        return client

    def ready(self, instance) -> bool:
        host = instance.address(private=self.use_private_ip)
        if not host:
            log.debug("Instance %s has no address yet", instance.id)
            return False
        try:
            client = self.create_client(host)
        except (FileNotFoundError, PermissionError):
            # socket.error is OSError; local file errors must not read as "not ready"
            raise
        except (paramiko.SSHException, socket.error) as e:
            log.debug("SSH to %s@%s not ready: %s", self.user, host, e)
            return False
        try:
            _, stdout, _ = client.exec_command("true", timeout=self.timeout)
            return stdout.channel.recv_exit_status() == 0
        except (paramiko.SSHException, socket.error) as e:
            log.debug("SSH command on %s failed: %s", host, e)
            return False
        finally:
            client.close()
