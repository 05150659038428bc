import logging
import os
import pwd
import shutil
import tempfile
from typing import List, Optional

logger = logging.getLogger(__name__)


def get_path_owner(path) -> str:
    """Return the user name owning the path.

    Raises:
        OSError: if the path is not accessible.
        KeyError: if the owner uid has no passwd entry.
    """
    uid = os.stat(path).st_uid
    return pwd.getpwuid(uid).pw_name


def find_missing_commands(commands: List[str]) -> List[str]:
    missing = []
    for command in commands:
        if shutil.which(command) is None:
            missing.append(command)
    return missing


def write_file_atomically(path, content: str, mode: Optional[int] = 0o644):
    """Write the content to a temp file in the same directory and
    rename it into place so that readers never see a partial file."""
    target_dir = os.path.dirname(os.path.abspath(path))
    fd, temp_path = tempfile.mkstemp(
        prefix=".{}.".format(os.path.basename(path)),
        dir=target_dir)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.remove(temp_path)
        except OSError:
            pass
        raise


def chown_to_user(path, user: str):
    # the group is the primary group of the user
    user_info = pwd.getpwnam(user)
    os.chown(path, user_info.pw_uid, user_info.pw_gid)
