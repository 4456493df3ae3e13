""" Plugin hooks. A plugin is a mapping from hook point name to a callable;
    objects that provide a :func:`hooks` method returning such a mapping are
    accepted as well. The callables for each hook point are invoked with the
    client as their only argument, synchronously, in the order the plugins
    were listed.

    The hook points bracket the steps of client construction, in this
    order: init, before_connected, after_connected, before_subs_restart,
    after_subs_restart, before_disconnected, after_disconnected,
    before_added, after_added, before_changed, after_changed,
    before_removed, after_removed, after.
"""

import collections


points = (
    'init',
    'before_connected',
    'after_connected',
    'before_subs_restart',
    'after_subs_restart',
    'before_disconnected',
    'after_disconnected',
    'before_added',
    'after_added',
    'before_changed',
    'after_changed',
    'before_removed',
    'after_removed',
    'after',
)


class Hooks:
    """ The callables registered for every hook point, gathered from an
        ordered sequence of *plugins*.
    """

    def __init__(self, plugins=()):

        self.callbacks = collections.OrderedDict()

        for point in points:
            self.callbacks[point] = list()

        for plugin in plugins:
            self.add(plugin)


    def add(self, plugin):

        try:
            hooks = plugin.hooks
        except AttributeError:
            mapping = plugin
        else:
            mapping = hooks()

        for point, callback in mapping.items():
            try:
                callbacks = self.callbacks[point]
            except KeyError:
                raise ValueError('unknown plugin hook point: ' + repr(point))

            if callable(callback):
                pass
            else:
                raise TypeError("plugin hook '%s' is not callable" % (point))

            callbacks.append(callback)


    def run(self, client, *points):
        """ Invoke the callbacks for each of the named hook *points*, in
            order, passing *client*.
        """

        for point in points:
            for callback in self.callbacks[point]:
                callback(client)


# end of class Hooks


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
