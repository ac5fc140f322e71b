#
# Copyright 2024 cdeps Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

import os
import shlex
import subprocess
import time
from dataclasses import dataclass, field
from threading import Timer
from typing import Dict, List, Optional, Sequence, Tuple

DEFAULT_MAKE_PROGRAM = "make"
DEFAULT_MAKE_CLEAN_TARGET = "clean"
DEFAULT_MAKE_CHECK_TARGET = "test"


@dataclass
class BuildCommand:
    """One program invocation, run without a shell."""
    program: str
    args: List[str] = field(default_factory=list)
    cwd: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> List[str]:
        return [self.program] + list(self.args)

    def __str__(self):
        return shlex.join(self.argv)


def make_commands(directory: str, makefile: str, clean: Optional[str] = None,
                  test: Optional[str] = None, force: bool = False,
                  env: Optional[Dict[str, str]] = None,
                  program: str = DEFAULT_MAKE_PROGRAM) -> List[BuildCommand]:
    """
    Describe the make invocations for a package.

    Phases: an optional clean target, then the main invocation, which runs
    `test` instead of the default target when given and rebuilds everything
    (-B) when forced.
    """
    env = dict(env or {})
    commands = []
    if clean:
        commands.append(BuildCommand(program, ["-f", makefile, clean], directory, env))

    args = ["-f", makefile]
    if force:
        args.append("-B")
    if test:
        args.append(test)
    commands.append(BuildCommand(program, args, directory, env))
    return commands


def shell_command(command_line: str, directory: str,
                  env: Optional[Dict[str, str]] = None) -> BuildCommand:
    """Describe a manifest-provided command line (e.g. `install`)."""
    argv = shlex.split(command_line)
    if not argv:
        raise ValueError("empty command")
    return BuildCommand(argv[0], argv[1:], directory, dict(env or {}))


def exec_command(command: BuildCommand,
                 timeout_second: Optional[float] = None) -> Tuple[int, str]:
    """
    Run `command` to completion, capturing combined output.

    No timeout is applied unless `timeout_second` is given.

    Returns:
        (return code, output)
    """
    start_mills = int(time.time() * 1000)
    env = dict(os.environ)
    env.update(command.env)
    try:
        popen = subprocess.Popen(
            command.argv,
            cwd=command.cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        return 127, f"Failed to run {command.program}: {e}"

    timer = None
    if timeout_second is not None:
        timer = Timer(timeout_second, lambda process: process.kill(), [popen])
        timer.start()
    try:
        stdout, _ = popen.communicate()
    finally:
        if timer is not None:
            timer.cancel()

    err_code = popen.returncode
    err_msg = bytes.decode(stdout or b"", "UTF-8", errors="replace")
    if err_code == -9 and not err_msg:
        use_time = int(time.time() * 1000) - start_mills
        err_msg = f"Failed for timeout({err_code}), use_time: {use_time}ms"
    return err_code, err_msg


def exec_commands(commands: Sequence[BuildCommand]) -> Tuple[int, str]:
    """Run commands in order, stopping at the first failure."""
    output = []
    for command in commands:
        code, out = exec_command(command)
        output.append(out)
        if code != 0:
            return code, "".join(output)
    return 0, "".join(output)
