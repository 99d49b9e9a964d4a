"""Process tree termination for supervised children."""

import logging

import psutil


def kill_process_tree(root_pid: int, timeout: float = 3.0) -> int:
    """Terminate a process and all of its descendants.

    Children are terminated before their parents; anything still alive
    after ``timeout`` seconds is killed.

    Args:
        root_pid: PID of the root process
        timeout: Seconds to wait for graceful termination

    Returns:
        Number of processes signalled
    """
    try:
        root_proc = psutil.Process(root_pid)
    except psutil.NoSuchProcess:
        return 0

    try:
        children = root_proc.children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    # Reverse so children go before parents
    processes = list(reversed(children)) + [root_proc]

    signalled: list[psutil.Process] = []
    for proc in processes:
        try:
            proc.terminate()
            signalled.append(proc)
            logging.debug(f"Terminated process {proc.pid}")
        except psutil.NoSuchProcess:
            pass  # Already dead
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logging.warning(f"Failed to terminate process {proc.pid}: {e}")

    _gone, alive = psutil.wait_procs(signalled, timeout=timeout)

    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logging.warning(f"Failed to force kill process {proc.pid}: {e}")

    return len(signalled)
