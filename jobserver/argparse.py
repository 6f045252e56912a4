import os


def addArgumentParserBaseFlags(parser, logfileName):
    '''
    Adds the common flags used by all scripts included with jobserver.

    Provides ALL flags required by the Config class.
    '''
    parser.add_argument(
        "-v",
        dest="verbose",
        help="Increase verbosity (multiple times for more verbose)",
        action="append_const",
        const=1)
    parser.add_argument(
        "-d",
        "--state-dir",
        dest='stateDir',
        metavar="DIR",
        help="Specify state directory (default='%(default)s')",
        default=os.getenv('JOBSERVER_STATE_DIR', "~/.local/share/jobserver"))
    parser.add_argument("--rc-file", dest="rcFile",
                        help="Specify path to rc-file (default=\"%(default)s\")",
                        default="~/.config/jobserverrc")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug output to <state-dir>/log/%s.log" % logfileName)
    parser.add_argument("--debug-file", dest="debugFile", metavar="LOGFILE",
                        help="enable debug output to LOGFILE instead")
