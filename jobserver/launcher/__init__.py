"""
Launchers start the workload of a job.

get_launcher picks the launcher named by the configuration: one of the
built-in ``local`` and ``cluster`` types, or a type provided by a plugin.
"""

from typing import Optional

from jobserver.config import LAUNCHER_CLUSTER, LAUNCHER_LOCAL, Config, ConfigError
from jobserver.plugins import Plugins

from .cluster import ClusterLauncher
from .interface import Launcher
from .local import LocalLauncher

__all__ = ["ClusterLauncher", "Launcher", "LocalLauncher", "get_launcher"]


def get_launcher(config: Config, plugins: Optional[Plugins] = None) -> Launcher:
    if config.launcherType == LAUNCHER_LOCAL:
        return LocalLauncher(config.stateDir, config.rcFile, config.pipelineCmd)
    if config.launcherType == LAUNCHER_CLUSTER:
        if not config.clusterEndpoint:
            raise ConfigError(
                "RC file must set \"cluster.endpoint\" for the cluster launcher")
        return ClusterLauncher(config.clusterEndpoint, config.launchTimeout,
                               token=config.clusterToken)
    launcher = (plugins or Plugins()).makeLauncher(config)
    if launcher is None:
        raise ConfigError(
            "RC file has invalid \"launcher.type\" setting {}.  No built-in "
            "launcher or plugin provides it".format(config.launcherType))
    return launcher
