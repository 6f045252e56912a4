import logging
import os
import sys


def getLogger(name):
    return logging.getLogger(name)


def setup(logDir, debugLogFileName, debug=False):
    """
    Configure the root logger.

    With debug=False, errors go to stderr. With debug=True, everything goes
    to <logDir>/<debugLogFileName>.log. A string debug value names the log
    file to use instead.
    """
    fmt = (
        '+%(process)-6d %(threadName)-12s %(levelname)-9s '
        '%(name)-28s %(filename)20s:%(lineno)-5d '
        '[%(asctime)s] %(message)s')
    if debug:
        if isinstance(debug, str):
            logFileName = os.path.expanduser(debug)
        else:
            logFileName = os.path.join(logDir, debugLogFileName + ".log")
        logging.basicConfig(
            filename=logFileName,
            level=logging.DEBUG,
            format=fmt)
    else:
        logging.basicConfig(stream=sys.stderr, level=logging.ERROR, format=fmt)
