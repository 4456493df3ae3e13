""" The outbound message queue. Requests are queued whether or not the
    connection is up; the queue is drained, in order, whenever the
    connection will accept them.
"""

import collections
import threading


class MessageQueue:
    """ An ordered buffer of outbound requests. The *send* callable is
        invoked with one entry at a time, oldest first; it returns True if
        the entry was handed to the transport, and False if it could not be
        sent right now (for example, because the connection is down). An
        entry is only removed from the queue after *send* accepts it.
    """

    def __init__(self, send):

        self.send = send
        self.paused = False
        self.entries = collections.deque()
        self.lock = threading.RLock()


    def __len__(self):
        return len(self.entries)


    def empty(self):
        """ Discard every queued entry.
        """

        with self.lock:
            self.entries.clear()


    def pause(self):
        """ Stop draining the queue until :func:`resume` is called. Entries
            can still be added while paused.
        """

        self.paused = True


    def process(self):
        """ Hand queued entries to *send* until the queue is empty, the
            queue is paused, or *send* declines an entry.
        """

        with self.lock:
            while self.paused == False and self.entries:
                entry = self.entries[0]

                if self.send(entry) == True:
                    self.entries.popleft()
                else:
                    break


    def push(self, entry):
        """ Append *entry* at the end of the queue, and try to drain it.
        """

        with self.lock:
            self.entries.append(entry)
            self.process()


    def resume(self):
        """ Resume draining the queue after a :func:`pause`.
        """

        self.paused = False
        self.process()


    def unshift(self, entry):
        """ Insert *entry* at the front of the queue, ahead of everything
            already waiting, and try to drain it.
        """

        with self.lock:
            self.entries.appendleft(entry)
            self.process()


# end of class MessageQueue


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
