import ddpmirror
import pytest


def test_registration_order():

    calls = list()

    first = {'init': lambda client: calls.append(('first', client))}
    second = {'init': lambda client: calls.append(('second', client))}

    hooks = ddpmirror.plugins.Hooks([first, second])
    hooks.run('client', 'init', 'after')

    assert calls == [('first', 'client'), ('second', 'client')]


def test_hooks_method():

    calls = list()

    class Plugin:
        def hooks(self):
            return {'after': self.after}

        def after(self, client):
            calls.append(client)

    hooks = ddpmirror.plugins.Hooks()
    hooks.add(Plugin())
    hooks.run('client', 'after')

    assert calls == ['client']


def test_unknown_point():

    with pytest.raises(ValueError):
        ddpmirror.plugins.Hooks([{'beforeConnected': lambda client: None}])


def test_not_callable():

    with pytest.raises(TypeError):
        ddpmirror.plugins.Hooks([{'init': 'not a function'}])


def test_points():
    assert ddpmirror.plugins.points[0] == 'init'
    assert ddpmirror.plugins.points[-1] == 'after'
    assert len(ddpmirror.plugins.points) == 14


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
