"""Remote Host Setup Workflow Prompt

Walks the user through preparing a Mac for remote simulator automation.
"""

from typing import Optional


async def render_remote_setup_prompt(
    host: Optional[str] = None, username: Optional[str] = None
) -> str:
    """Generate the remote host setup workflow

    Args:
        host: macOS host (default: placeholder)
        username: SSH user (default: placeholder)

    Returns:
        Formatted workflow instructions as string
    """
    host = host or "<mac-host>"
    username = username or "<user>"

    return f"""# Remote Host Setup Workflow for {host}

This workflow prepares **{host}** so simulator commands can run over SSH.

## Prerequisites (manual)

- Remote Login enabled on the Mac: System Settings > General > Sharing > Remote Login
- Key-based SSH works without a password prompt:
```bash
ssh {username}@{host} echo ok
```
- Xcode installed and launched once (accept the license, install an iOS simulator runtime)

## Step 1: Analyze (no changes)

```
setup_remote_host(host="{host}", username="{username}", dry_run=true)
```

Read the report:
- **MISSING REQUIREMENTS** must be fixed by hand (macOS, Xcode, simulators, SSH access)
- **ACTIONS NEEDED** can be applied automatically

## Step 2: Apply

Once no missing requirements remain:
```
setup_remote_host(host="{host}", username="{username}", auto_confirm=true)
```

Actions run in dependency order: Homebrew, PATH registration, Python3, pip3,
idb-companion, fb-idb, Python bin PATH, then the idb_companion daemon.
If one fails the rest are not run; completed changes are kept. Fix the error
shown and run the tool again; completed steps are skipped.

## Step 3: Configure this server

Set these environment variables (or put them in a `.env` file) and restart:
```
IOS_SIMULATOR_SSH_HOST={host}
IOS_SIMULATOR_SSH_USERNAME={username}
IOS_SIMULATOR_SSH_KEY_PATH=~/.ssh/id_ed25519
```

Check resource `remote://session` to confirm the connection state and the
resolved idb path.

## Troubleshooting

- "SSH connection ... failed": check the host is reachable and `ssh-add -l` lists your key
- idb_companion will not start: inspect `/tmp/idb_companion.log` on the Mac
- idb not found after install: open a new shell on the Mac, or set
  `IOS_SIMULATOR_IDB_PATH` to the absolute path of `idb`
"""
