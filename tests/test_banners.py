import asyncio

from surfex.probes import BANNER_PARSERS, parse_ftp_version, parse_mysql_version, parse_ssh_version, read_banner


def test_ftp_version():
    assert parse_ftp_version(b"220 ProFTPD 1.3.5e Server (Debian)\r\n230 more\r\n") == "ProFTPD 1.3.5e Server (Debian)"
    assert parse_ftp_version(b"22") == ""
    assert parse_ftp_version(b"") == ""


def test_ssh_version():
    assert parse_ssh_version(b"SSH-2.0-OpenSSH_8.9p1 Ubuntu-3ubuntu0.4\r\n") == "SSH-2.0-OpenSSH_8.9p1 Ubuntu-3ubuntu0.4"
    assert parse_ssh_version(b"welcome\nssh-1.99-Cisco-1.25\n") == "ssh-1.99-Cisco-1.25"
    assert parse_ssh_version(b"") == ""


def test_mysql_version_from_handshake():
    handshake = b"J\x00\x00\x00\x0a8.0.33-0ubuntu0.22.04.2\x00\x0b\x00\x00\x00abcdefgh\x00"
    assert parse_mysql_version(handshake) == "8.0.33-0ubuntu0.22.04.2"
    assert parse_mysql_version(b"\x00\x01") == ""


def test_only_known_protocols_are_parsed():
    assert set(BANNER_PARSERS) == {21, 22, 3306}


async def test_read_banner_until_close():
    async def greet(reader, writer):
        writer.write(b"220 test ftp ready\r\n")
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(greet, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        banner = await read_banner(reader, timeout=2)
        writer.close()
    finally:
        server.close()
        await server.wait_closed()
    assert parse_ftp_version(banner) == "test ftp ready"


async def test_read_banner_tolerates_silence():
    async def mute(reader, writer):
        await asyncio.sleep(1)
        writer.close()

    server = await asyncio.start_server(mute, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        banner = await read_banner(reader, timeout=0.2)
        writer.close()
    finally:
        server.close()
        await server.wait_closed()
    assert banner == b""
