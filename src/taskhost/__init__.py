"""taskhost -- per-machine execution agent for checkpointable task containers.

Quick start::

    from taskhost.core.config import get_settings
    from taskhost.execution.runtimes import DockerTaskOperations, ProviderShell

    shell = ProviderShell(DockerTaskOperations(get_settings()))
    await shell.start()
    await shell.handle("restore", {"runId": "run_9", "checkpointRef": "cp_1"})
"""

__version__ = "0.1.0"
