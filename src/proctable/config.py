"""Configuration constants for proctable."""

from pathlib import Path

# Account database
PASSWD_PATH = Path("/etc/passwd")

# Pseudo-filesystem root (Linux, Solaris)
PROC_ROOT = Path("/proc")

# sysctl selectors for "all processes" (Darwin, sys/sysctl.h)
CTL_KERN = 1
KERN_PROC = 14
KERN_PROC_ALL = 0

# sizeof(struct kinfo_proc) on 64-bit Darwin
KINFO_STRUCT_SIZE = 648

# Viewer settings
REFRESH_INTERVAL = 2.0  # Seconds between snapshots

# Logging
LOG_DIR = Path.home() / ".proctable" / "logs"
LOG_FILE = LOG_DIR / "proctable.log"
