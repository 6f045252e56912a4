import configparser
import os
import shlex

RC_FILE_HELP = """\
Sample rcfile:
    [launcher]
    type = local|cluster  # default=local, or a jobserver.launchers plugin
    timeout = 30          # seconds, default=30
    [cluster]
    endpoint = https://cluster.example.com/api
    token = <bearer token>
    [persist]
    timeout = 5           # seconds to wait on a locked database, default=5
    [pipelines]
    wordcount = wc -w
"""

LAUNCHER_LOCAL = "local"
LAUNCHER_CLUSTER = "cluster"

DEFAULT_LAUNCH_TIMEOUT = 30.0
DEFAULT_PERSIST_TIMEOUT = 5.0


def _getConfig(cfgParser, section, option, defaultValue=None):
    if not cfgParser.has_section(section):
        return defaultValue
    if not cfgParser.has_option(section, option):
        return defaultValue
    return cfgParser.get(section, option)


def _getDictConfig(cfgParser, section):
    options = {}
    if not cfgParser.has_section(section):
        return options
    for option in cfgParser.options(section):
        options[option] = _getConfig(cfgParser, section, option, None)
    return options


def _getTimeoutConfig(cfgParser, section, option, default):
    val = _getConfig(cfgParser, section, option, None)
    if val is None:
        return default
    try:
        timeout = float(val)
    except ValueError:
        timeout = -1.0
    if timeout <= 0:
        raise ConfigError(
            "RC file has invalid \"{section}.{option}\" setting {optionVal}.  "
            "Expected a positive number of seconds".format(
                section=section,
                option=option,
                optionVal=val))
    return timeout


class ConfigError(Exception):
    pass


_VAR_OPTIONS = object()


class Config(object):
    # pylint: disable=too-many-instance-attributes
    validConfig = {
        'launcher': {'type', 'timeout'},
        'cluster': {'endpoint', 'token'},
        'persist': {'timeout'},
        'pipelines': _VAR_OPTIONS,
    }

    def _validateConfigParser(self, cfgParser):
        cfgSections = set(cfgParser.sections())
        unknownSections = cfgSections - set(self.validConfig.keys())
        if unknownSections:
            raise ConfigError(
                "RC file has unknown configuration sections: {}".format(
                    ", ".join(sorted(unknownSections))))
        for section in cfgSections:
            cfgValues = set(cfgParser.options(section))
            validSectionConfig = self.validConfig[section]
            if validSectionConfig is not _VAR_OPTIONS:
                assert isinstance(validSectionConfig, set)
                unknownOptions = cfgValues - validSectionConfig
                if unknownOptions:
                    raise ConfigError(
                        "RC file has unknown configuration options in "
                        "section \"{}\": {}".format(
                            section, ", ".join(sorted(unknownOptions))))

    def __init__(self, options):
        stateDir = options.stateDir
        self.options = options
        self._stateDir = os.path.expanduser(stateDir)
        self._dbDir = self._stateDir + "/db/"
        self._logDir = self._stateDir + "/log/"

        rcFile = os.path.expanduser(options.rcFile)
        cfgParser = configparser.RawConfigParser()
        cfgParser.read(rcFile)
        self._validateConfigParser(cfgParser)

        self._launcherType = _getConfig(
            cfgParser, "launcher", "type", LAUNCHER_LOCAL)
        self._launchTimeout = _getTimeoutConfig(
            cfgParser, "launcher", "timeout", DEFAULT_LAUNCH_TIMEOUT)
        self._clusterEndpoint = _getConfig(cfgParser, "cluster", "endpoint")
        self._clusterToken = _getConfig(cfgParser, "cluster", "token")
        self._persistTimeout = _getTimeoutConfig(
            cfgParser, "persist", "timeout", DEFAULT_PERSIST_TIMEOUT)
        self._pipelines = _getDictConfig(cfgParser, "pipelines")

    @property
    def verbose(self):
        return self.options.verbose

    @staticmethod
    def checkDir(dirName):
        if not os.access(dirName, os.W_OK | os.X_OK | os.R_OK):
            os.makedirs(dirName, exist_ok=True)
        return dirName

    @property
    def stateDir(self):
        return self._stateDir

    @property
    def dbDir(self):
        return self.checkDir(self._dbDir)

    @property
    def dbFile(self):
        return os.path.join(self.dbDir, "jobs.sqlite")

    @property
    def logDir(self):
        return self.checkDir(self._logDir)

    @property
    def rcFile(self):
        return self.options.rcFile

    @property
    def launcherType(self):
        return self._launcherType

    @property
    def launchTimeout(self):
        return self._launchTimeout

    @property
    def clusterEndpoint(self):
        return self._clusterEndpoint

    @property
    def clusterToken(self):
        return self._clusterToken

    @property
    def persistTimeout(self):
        return self._persistTimeout

    def pipelineCmd(self, name):
        """The command configured for a pipeline, or None."""
        cmd = self._pipelines.get(name)
        if cmd is None:
            return None
        return shlex.split(cmd)
