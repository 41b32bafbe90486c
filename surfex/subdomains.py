from __future__ import annotations

import asyncio
from typing import List, Sequence

from surfex.errors import SubdomainToolError


async def find_subdomains(hosts: Sequence[str], command: Sequence[str]) -> List[str]:
    """Run the enumeration tool with hosts on stdin and return its output lines.

    Raises OSError when the executable cannot be started and
    SubdomainToolError when it exits with a non-zero status.
    """
    proc = await asyncio.create_subprocess_exec(
        *command,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    out, err = await proc.communicate(("\n".join(hosts) + "\n").encode())
    if proc.returncode != 0:
        msg = err.decode(errors="ignore").strip().splitlines()
        raise SubdomainToolError(f"{command[0]} exited with {proc.returncode}: {msg[-1] if msg else 'no output'}")
    return [line.strip() for line in out.decode(errors="ignore").splitlines() if line.strip()]
