"""Tests for the SSH session pool."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from sshbox.models import SSHHost
from sshbox.services.pool import ConnectionPool


def make_conn(closed: bool = False) -> MagicMock:
    """Fake asyncssh connection."""
    conn = MagicMock()
    conn.is_closed = MagicMock(return_value=closed)
    return conn


@pytest.fixture
def host() -> SSHHost:
    """Plain SSH host identity."""
    return SSHHost(name="testhost", hostname="192.168.1.100", user="testuser", port=22)


@pytest.mark.asyncio
async def test_get_connection_creates_new_connection(host: SSHHost) -> None:
    """First request opens a new SSH session."""
    pool = ConnectionPool(idle_timeout=60)
    conn = make_conn()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = conn

        result = await pool.get_connection(host)

        assert result is conn
        mock_connect.assert_called_once_with(
            host.hostname,
            port=host.port,
            username=host.user,
            known_hosts=None,
            client_keys=None,
        )
    await pool.close_all()


@pytest.mark.asyncio
async def test_get_connection_reuses_existing(host: SSHHost) -> None:
    """Subsequent requests reuse the open session."""
    pool = ConnectionPool(idle_timeout=60)

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = make_conn()

        first = await pool.get_connection(host)
        second = await pool.get_connection(host)

        assert first is second
        assert mock_connect.call_count == 1
    await pool.close_all()


@pytest.mark.asyncio
async def test_get_connection_replaces_closed(host: SSHHost) -> None:
    """Closed sessions are replaced."""
    pool = ConnectionPool(idle_timeout=60)
    closed, fresh = make_conn(closed=True), make_conn()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = [closed, fresh]

        await pool.get_connection(host)
        result = await pool.get_connection(host)

        assert result is fresh
        assert mock_connect.call_count == 2
    await pool.close_all()


@pytest.mark.asyncio
async def test_identity_files_passed_as_client_keys(host: SSHHost) -> None:
    """Keys of the identity are used for authentication."""
    pool = ConnectionPool(idle_timeout=60)
    keyed = host.with_keys("/keys/id_ed25519", "/keys/id_rsa")

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = make_conn()

        await pool.get_connection(keyed)

        assert mock_connect.call_args.kwargs["client_keys"] == [
            "/keys/id_ed25519",
            "/keys/id_rsa",
        ]
    await pool.close_all()


@pytest.mark.asyncio
async def test_password_passed_when_set() -> None:
    pool = ConnectionPool(idle_timeout=60)
    host = SSHHost(name="h", hostname="h", password="s3cret")

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = make_conn()

        await pool.get_connection(host)

        assert mock_connect.call_args.kwargs["password"] == "s3cret"
    await pool.close_all()


@pytest.mark.asyncio
async def test_different_keys_get_different_sessions(host: SSHHost) -> None:
    """Adding keys changes the identity, so a new session is authenticated."""
    pool = ConnectionPool(idle_timeout=60)

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = [make_conn(), make_conn()]

        first = await pool.get_connection(host)
        second = await pool.get_connection(host.with_keys("/keys/extra"))

        assert first is not second
        assert pool.pool_size == 2
    await pool.close_all()


@pytest.mark.asyncio
async def test_close_all_closes_sessions(host: SSHHost) -> None:
    pool = ConnectionPool(idle_timeout=60)
    conn = make_conn()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = conn

        await pool.get_connection(host)
        await pool.close_all()

    conn.close.assert_called_once()
    assert pool.pool_size == 0


@pytest.mark.asyncio
async def test_remove_connection(host: SSHHost) -> None:
    pool = ConnectionPool(idle_timeout=60)
    conn = make_conn()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = conn
        await pool.get_connection(host)

    await pool.remove_connection(host.pool_key)
    await pool.remove_connection(host.pool_key)

    conn.close.assert_called_once()
    assert host.pool_key not in pool.active_hosts
    await pool.close_all()


@pytest.mark.asyncio
async def test_lru_eviction_at_capacity() -> None:
    """Oldest session is closed when the pool is full."""
    pool = ConnectionPool(idle_timeout=60, max_size=2)
    hosts = [SSHHost(name=f"h{i}", hostname=f"h{i}") for i in range(3)]
    conns = [make_conn() for _ in hosts]

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = conns
        for h in hosts:
            await pool.get_connection(h)

    assert pool.pool_size == 2
    conns[0].close.assert_called_once()
    assert pool.active_hosts == [hosts[1].pool_key, hosts[2].pool_key]
    await pool.close_all()


@pytest.mark.asyncio
async def test_concurrent_requests_open_one_session(host: SSHHost) -> None:
    """Per-identity lock prevents duplicate sessions."""
    pool = ConnectionPool(idle_timeout=60)

    async def slow_connect(*args: object, **kwargs: object) -> MagicMock:
        await asyncio.sleep(0.05)
        return make_conn()

    with patch("asyncssh.connect", new_callable=AsyncMock, side_effect=slow_connect) as mock_connect:
        results = await asyncio.gather(*(pool.get_connection(host) for _ in range(5)))

    assert mock_connect.call_count == 1
    assert all(r is results[0] for r in results)
    await pool.close_all()


def test_invalid_max_size() -> None:
    with pytest.raises(ValueError, match="max_size"):
        ConnectionPool(max_size=0)


@pytest.mark.asyncio
async def test_strict_host_key_failure_propagates(host: SSHHost) -> None:
    pool = ConnectionPool(known_hosts="/tmp/known_hosts", strict_host_key_checking=True)

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = asyncssh.HostKeyNotVerifiable("unknown key")

        with pytest.raises(asyncssh.HostKeyNotVerifiable):
            await pool.get_connection(host)


@pytest.mark.asyncio
async def test_non_strict_retries_without_verification(host: SSHHost) -> None:
    pool = ConnectionPool(known_hosts="/tmp/known_hosts", strict_host_key_checking=False)
    conn = make_conn()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = [asyncssh.HostKeyNotVerifiable("unknown key"), conn]

        result = await pool.get_connection(host)

    assert result is conn
    assert mock_connect.call_args_list[1].kwargs["known_hosts"] is None
    await pool.close_all()


@pytest.mark.asyncio
async def test_auth_errors_propagate_unchanged(host: SSHHost) -> None:
    pool = ConnectionPool()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = asyncssh.PermissionDenied("bad key")

        with pytest.raises(asyncssh.PermissionDenied):
            await pool.get_connection(host)


@pytest.mark.asyncio
async def test_cleanup_idle_closes_old_sessions(host: SSHHost) -> None:
    from datetime import datetime, timedelta

    pool = ConnectionPool(idle_timeout=1)
    conn = make_conn()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = conn
        await pool.get_connection(host)

    pool._connections[host.pool_key].last_used = datetime.now() - timedelta(seconds=5)
    await pool._cleanup_idle()

    conn.close.assert_called_once()
    assert pool.pool_size == 0
    await pool.close_all()


def test_close_all_nowait() -> None:
    """Synchronous close used by the exit hook."""
    from sshbox.models import PooledConnection

    pool = ConnectionPool()
    conn = make_conn()
    pool._connections["k"] = PooledConnection(connection=conn)

    pool.close_all_nowait()

    conn.close.assert_called_once()
    assert pool.pool_size == 0
