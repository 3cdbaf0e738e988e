"""Line-counting utility used alongside the profiling lesson.

Counts total, blank, comment and code lines for files or directory trees.
"""

from __future__ import annotations
