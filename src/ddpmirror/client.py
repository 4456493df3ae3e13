""" The :class:`Client` is the principal entry point for ddpmirror. It owns
    the connection, the subscriptions, and the authoritative local copy of
    every collection the server has published to this client; the dispatch
    engine implemented here applies each 'added', 'changed' and 'removed'
    message to that local copy and fans the change out to every interested
    change listener.
"""

import copy
import itertools
import logging
import threading

from . import collection
from . import config
from . import ejson
from . import futures
from . import identity
from . import listener
from . import plugins
from .collection import CollectionView
from .connection import Connection, CONNECTED
from .errors import MaxTimeoutError, MethodError
from .events import Dispatcher
from .subscription import Subscription


logger = logging.getLogger(__name__)

_clients = itertools.count()


class Synthesized(dict):
    """ A protocol message generated locally rather than received from the
        server, such as the 'removed' messages produced by
        :func:`Client.clear_data`. It behaves exactly like the dictionary a
        server message would decode to; the extra :attr:`tag` identifies the
        operation that generated it.
    """

    def __init__(self, tag, *args, **kwargs):
        dict.__init__(self, *args, **kwargs)
        self.tag = tag


# end of class Synthesized



class ChangeRecord:
    """ One change listener registration: deliver changes for the
        collection *name* to *callback*. If *predicate* is None every
        change is delivered as-is; otherwise only changes that involve a
        document passing the predicate are delivered, along with the
        before/after transition flags.
    """

    def __init__(self, name, callback, predicate=None):

        if callable(callback):
            pass
        else:
            raise TypeError('the change callback must be callable')

        if predicate is not None and callable(predicate) == False:
            raise TypeError('the change predicate must be callable')

        self.name = name
        self.callback = callback
        self.predicate = predicate


    def passes(self, document):
        """ Evaluate the predicate against *document*, returning 1 or 0.
        """

        return collection.passes(self.predicate, document)


# end of class ChangeRecord



class Client:
    """ A DDP client. The *options* can be a
        :class:`ddpmirror.config.Options` instance, a dictionary, or
        keyword arguments; see :class:`ddpmirror.config.Options` for the
        recognized options. Unless *auto_connect* is False the connection
        is attempted immediately.

        :ivar collections: Every document received from the server, as a
            dictionary mapping a collection name to a list of documents.
            This is internal state; use :func:`collection` to read it.
        :ivar subs: The list of :class:`ddpmirror.Subscription` instances.
    """

    def __init__(self, options=None, **kwargs):

        options = config.options(options, **kwargs)

        self.options = options
        self.max_timeout = options.max_timeout_seconds
        self.clear_data_on_reconnection = options.clear_data_on_reconnection

        self.collections = dict()
        self.changes = listener.Registry()
        self.subs = list()

        self.connected = False
        self.trying_to_connect = options.auto_connect
        self.trying_to_disconnect = False
        self.will_try_to_reconnect = options.auto_reconnect

        self.user_id = None
        self.token = None
        self.logged_in = False

        self._id = next(_clients)
        self._operations = itertools.count()
        self._store_lock = threading.RLock()
        self._subs_lock = threading.Lock()

        self.dispatcher = Dispatcher('ddpmirror.Client.%d' % (self._id))
        self.hooks = plugins.Hooks(options.plugins)

        # The dispatcher delivers events in registration order; the handlers
        # registered here always run ahead of any registered later by users.

        self.hooks.run(self, 'init', 'before_connected')
        self.connected_listener = self.on('connected', self._connected)
        self.hooks.run(self, 'after_connected', 'before_subs_restart')
        self.restart_listener = self.on('connected', self._restart_after_connect)
        self.hooks.run(self, 'after_subs_restart', 'before_disconnected')
        self.disconnected_listener = self.on('disconnected', self._disconnected)
        self.hooks.run(self, 'after_disconnected', 'before_added')
        self.added_listener = self.on('added', self._dispatch_added)
        self.hooks.run(self, 'after_added', 'before_changed')
        self.changed_listener = self.on('changed', self._dispatch_changed)
        self.hooks.run(self, 'after_changed', 'before_removed')
        self.removed_listener = self.on('removed', self._dispatch_removed)
        self.hooks.run(self, 'after_removed', 'after')

        # Connecting last ensures nothing can arrive before the handlers
        # above are in place.

        self.connection = Connection(options, self.dispatcher)


    def __repr__(self):
        return "client.Client: %s %s" % (self.options.endpoint, self.connection.status)


    # Connection management.

    def close(self):
        """ Disconnect, and shut down the dispatcher thread. The instance
            cannot be used afterwards.
        """

        self.will_try_to_reconnect = False
        self.connection.disconnect()
        self.dispatcher.stop()


    def connect(self):
        """ Connect to the server. This happens automatically on
            construction unless *auto_connect* is False. Returns a future
            that resolves once the connection is established; it fails with
            :class:`ddpmirror.errors.MaxTimeoutError` if *max_timeout*
            elapses first.
        """

        future = futures.Future()
        timer = None

        def connected(message):
            if timer is not None:
                timer.cancel()
            handler.stop()
            self.trying_to_connect = False
            futures.settle(future)

        def expired():
            handler.stop()
            self.trying_to_connect = False
            futures.fail(future, MaxTimeoutError())

        handler = self.on('connected', connected)

        if self.connected == True and self.connection.status == CONNECTED:
            handler.stop()
            futures.settle(future)
            return future

        self.will_try_to_reconnect = self.options.auto_reconnect
        self.trying_to_connect = True
        self.connection.connect()

        if self.max_timeout is not None:
            timer = self.dispatcher.call_later(self.max_timeout, expired)

        return future


    def disconnect(self):
        """ Disconnect from the server, suspending automatic reconnection.
            Returns a future that resolves once the connection is closed.
        """

        future = futures.Future()
        timer = None

        def disconnected():
            if timer is not None:
                timer.cancel()
            handler.stop()
            self.trying_to_disconnect = False
            futures.settle(future)

        def expired():
            handler.stop()
            self.trying_to_disconnect = False
            futures.fail(future, MaxTimeoutError())

        handler = self.on('disconnected', disconnected)

        self.will_try_to_reconnect = False
        self.trying_to_disconnect = True
        self.connection.disconnect()

        if self.connected == False and self.connection.status != CONNECTED:
            handler.stop()
            self.trying_to_disconnect = False
            futures.settle(future)
            return future

        if self.max_timeout is not None:
            timer = self.dispatcher.call_later(self.max_timeout, expired)

        return future


    def on(self, event, handler):
        """ Invoke *handler* every time *event* occurs. The events are the
            DDP server messages ('added', 'changed', 'removed', 'ready',
            'nosub', 'result', 'updated', 'error', 'pong'), which are passed
            the decoded message; 'connected', which is passed the server's
            'connected' message; 'disconnected', 'logout' and
            'client_ready', which are passed nothing; and 'login' and
            'login_resume', which are passed the login result. Returns a
            started :class:`ddpmirror.listener.Listener`.
        """

        return self.dispatcher.on(event, handler)


    def _connected(self, message):
        self.connected = True
        self.trying_to_connect = False


    def _disconnected(self):
        self.connected = False
        self.trying_to_disconnect = False
        self.trying_to_connect = self.will_try_to_reconnect


    def _restart_after_connect(self, message):

        if self.clear_data_on_reconnection == True:
            cleared = self.clear_data()
            cleared.add_done_callback(self._client_ready)
        else:
            self._client_ready()


    def _client_ready(self, future=None):
        self.connection.emit('client_ready')
        self.restart_subs()


    def restart_subs(self):
        """ Restart every subscription that is on. This happens
            automatically after each (re)connection.
        """

        with self._subs_lock:
            subs = list(self.subs)

        for sub in subs:
            if sub.is_on():
                sub.restart()


    # Remote methods.

    def apply(self, method, args=None, at_beginning=False):
        """ Call the remote *method* with the list of *args*. Set
            *at_beginning* to True to send the request ahead of anything
            already queued. Returns a future for the method's result; it
            fails with :class:`ddpmirror.errors.MethodError`, carrying the
            server's error payload unchanged, if the method fails, or with
            :class:`ddpmirror.errors.MaxTimeoutError` if *max_timeout*
            elapses first. A timeout does not retract the request.
        """

        if args is None:
            args = list()

        future = futures.Future()
        id = self.connection.next_id()
        timer = None

        def result(message):
            try:
                other = message['id']
            except (KeyError, TypeError):
                return

            if identity.same_id(other, id) == False:
                return

            if timer is not None:
                timer.cancel()
            handler.stop()

            error = message.get('error')
            if error:
                futures.fail(future, MethodError(error))
            else:
                futures.settle(future, message.get('result'))

        def expired():
            handler.stop()
            futures.fail(future, MaxTimeoutError())

        handler = self.on('result', result)

        if self.max_timeout is not None:
            timer = self.dispatcher.call_later(self.max_timeout, expired)

        self.connection.method(method, args, at_beginning, id)
        return future


    def call(self, method, *args):
        """ Syntactic sugar for :func:`apply`, with the method arguments
            passed as individual arguments.
        """

        return self.apply(method, args)


    def login(self, credentials, at_beginning=False):
        """ Log in by calling the remote 'login' method with the
            *credentials* dictionary. The returned future resolves with the
            server's response, which must carry the user 'id'; a 'login'
            event (or 'login_resume', for a resumed login token) is emitted
            on success.
        """

        result = futures.Future()

        def done(future):
            exception = future.exception()
            if exception is not None:
                futures.fail(result, exception)
                return

            response = future.result()

            try:
                user_id = response['id']
            except (KeyError, TypeError):
                futures.fail(result, MethodError(response))
                return

            self.user_id = user_id
            self.token = response.get('token')
            self.logged_in = True

            if response.get('type') == 'resume':
                self.connection.emit('login_resume', response)
            else:
                self.connection.emit('login', response)

            futures.settle(result, response)

        self.apply('login', [credentials], at_beginning).add_done_callback(done)
        return result


    def logout(self):
        """ Log out, if logged in, by calling the remote 'logout' method. A
            'logout' event is emitted on success.
        """

        if self.logged_in == False:
            return futures.resolved()

        result = futures.Future()

        def done(future):
            exception = future.exception()
            if exception is not None:
                futures.fail(result, exception)
                return

            self.user_id = None
            self.token = None
            self.logged_in = False
            self.connection.emit('logout')
            futures.settle(result)

        self.apply('logout').add_done_callback(done)
        return result


    # Subscriptions.

    def sub(self, name, args=None):
        """ Subscribe to the publication *name* with the list of *args*. An
            existing subscription with the same name and arguments is
            returned instead of creating a new one, and is restarted if it
            has been stopped.
        """

        if args is None:
            args = list()
        else:
            args = list(args)

        with self._subs_lock:
            for sub in self.subs:
                if sub.name == name and sub.args == args:
                    existing = sub
                    break
            else:
                existing = None

            if existing is None:
                sub = Subscription(name, args, self)
                self.subs.append(sub)
                return sub

        if existing.is_stopped():
            existing.start()

        return existing


    def subscribe(self, name, *args):
        """ Syntactic sugar for :func:`sub`, with the publication arguments
            passed as individual arguments.
        """

        return self.sub(name, args)


    def _remove_subscription(self, sub):

        with self._subs_lock:
            for index, other in enumerate(self.subs):
                if other is sub:
                    del self.subs[index]
                    break


    # Collections and change listeners.

    def collection(self, name):
        """ Return a :class:`ddpmirror.CollectionView` for the collection
            *name*.
        """

        return CollectionView(name, self)


    def on_change(self, name, callback, predicate=None):
        """ Register *callback* for changes to the collection *name*. See
            :func:`ddpmirror.CollectionView.on_change`.
        """

        record = ChangeRecord(name, callback, predicate)
        return listener.Listener(self.changes, record)


    def stop_change_listeners(self):
        """ Stop every change listener, and with them all reactivity.
        """

        self.changes.clear()


    def snapshot(self, name):
        """ Return a deep copy of the documents in collection *name*.
        """

        with self._store_lock:
            try:
                documents = self.collections[name]
            except KeyError:
                return list()

            return copy.deepcopy(documents)


    def _records(self, name):

        records = list()

        for record in self.changes.snapshot():
            if record.name == name:
                records.append(record)

        return records


    def _deliver(self, record, change):

        if record not in self.changes:
            return

        try:
            record.callback(change)
        except Exception:
            logger.exception('exception in change callback %r', record.callback)


    def _dispatch_added(self, message):
        """ Apply an 'added' message. A document already present with the
            same id is dropped without telling anyone; a server should never
            send such a message, and if it does the new document wins.
        """

        name = message.get('collection')
        id = message.get('id')
        fields = message.get('fields')

        if isinstance(fields, dict) == False:
            fields = dict()

        with self._store_lock:
            try:
                documents = self.collections[name]
            except KeyError:
                documents = list()
                self.collections[name] = documents

            index = identity.index(documents, id)
            if index > -1:
                del documents[index]

            document = dict()
            document['_id'] = id
            document.update(copy.deepcopy(fields))
            documents.append(document)

            presence = dict()
            for field in fields:
                presence[field] = 1

            added = copy.deepcopy(document)
            records = self._records(name)

        for record in records:
            if record.predicate is None:
                change = dict()
                change['added'] = copy.deepcopy(added)
                change['changed'] = False
                change['removed'] = False
                self._deliver(record, change)
                continue

            next = copy.deepcopy(added)
            if record.passes(next) == False:
                continue

            change = dict()
            change['prev'] = False
            change['next'] = next
            change['fields'] = dict(presence)
            change['fields_changed'] = copy.deepcopy(added)
            change['fields_removed'] = list()
            change['predicate_passed'] = [0, 1]
            self._deliver(record, change)


    def _dispatch_changed(self, message):
        """ Apply a 'changed' message. A change for a document that is not
            present is treated as an addition.
        """

        name = message.get('collection')
        id = message.get('id')
        fields = message.get('fields')
        cleared = message.get('cleared')

        with self._store_lock:
            try:
                documents = self.collections[name]
            except KeyError:
                documents = list()
                self.collections[name] = documents

            index = identity.index(documents, id)

            if index == -1:
                document = None
            else:
                document = documents[index]
                prev = copy.deepcopy(document)

                presence = dict()
                fields_changed = dict()
                fields_removed = list()

                if isinstance(fields, dict) and fields:
                    fields_changed = copy.deepcopy(fields)
                    for field in fields:
                        presence[field] = 1
                    document.update(copy.deepcopy(fields))

                if isinstance(cleared, (list, tuple)) and cleared:
                    fields_removed = list(cleared)
                    for field in cleared:
                        presence[field] = 0
                        document.pop(field, None)

                next = copy.deepcopy(document)
                records = self._records(name)

        if document is None:
            self._dispatch_added(message)
            return

        for record in records:
            if record.predicate is None:
                changed = dict()
                changed['prev'] = copy.deepcopy(prev)
                changed['next'] = copy.deepcopy(next)
                changed['fields'] = dict(presence)
                changed['fields_changed'] = copy.deepcopy(fields_changed)
                changed['fields_removed'] = list(fields_removed)

                change = dict()
                change['changed'] = changed
                change['added'] = False
                change['removed'] = False
                self._deliver(record, change)
                continue

            prev_copy = copy.deepcopy(prev)
            next_copy = copy.deepcopy(next)
            prev_passed = record.passes(prev_copy)
            next_passed = record.passes(next_copy)

            if prev_passed == 0 and next_passed == 0:
                continue

            change = dict()
            change['prev'] = prev_copy
            change['next'] = next_copy
            change['fields'] = dict(presence)
            change['fields_changed'] = copy.deepcopy(fields_changed)
            change['fields_removed'] = list(fields_removed)
            change['predicate_passed'] = [prev_passed, next_passed]
            self._deliver(record, change)


    def _dispatch_removed(self, message):

        name = message.get('collection')
        id = message.get('id')

        with self._store_lock:
            try:
                documents = self.collections[name]
            except KeyError:
                documents = list()
                self.collections[name] = documents

            index = identity.index(documents, id)
            if index == -1:
                return

            removed = documents.pop(index)
            records = self._records(name)

        for record in records:
            if record.predicate is None:
                change = dict()
                change['removed'] = copy.deepcopy(removed)
                change['added'] = False
                change['changed'] = False
                self._deliver(record, change)
                continue

            prev = copy.deepcopy(removed)
            if record.passes(prev) == False:
                continue

            change = dict()
            change['prev'] = prev
            change['next'] = False
            change['predicate_passed'] = [1, 0]
            self._deliver(record, change)


    # Bulk data operations.

    def _tag(self):
        return '%d-%d' % (self._id, next(self._operations))


    def _await_tagged(self, event, tag, expected):
        """ Return a future that resolves once *expected* synthesized
            *event* messages carrying *tag* have made it through dispatch.
        """

        future = futures.Future()
        seen = [0]

        def tagged(message):
            if getattr(message, 'tag', None) != tag:
                return

            seen[0] += 1
            if seen[0] >= expected:
                handler.stop()
                futures.settle(future)

        handler = self.on(event, tagged)
        return future


    def clear_data(self):
        """ Remove every document as if the server had removed it, emitting
            the corresponding 'removed' events. The returned future resolves
            once every one of those events has been dispatched.
        """

        with self._store_lock:
            removals = list()
            for name, documents in self.collections.items():
                for document in documents:
                    removals.append((name, document.get('_id')))

        if len(removals) == 0:
            return futures.resolved()

        tag = self._tag()
        future = self._await_tagged('removed', tag, len(removals))

        for name, id in removals:
            message = Synthesized(tag, msg='removed', collection=name, id=id)
            self.connection.emit('removed', message)

        return future


    def import_data(self, data):
        """ Add documents as if the server had published them. The *data*
            is either the extended JSON text or the dictionary produced by
            :func:`export_data`: a mapping of collection name to a list of
            documents. Returns a future that resolves once every resulting
            'added' event has been dispatched.
        """

        if isinstance(data, (str, bytes)):
            data = ejson.parse(data)

        additions = list()

        for name, documents in data.items():
            if isinstance(documents, list) == False:
                continue

            for document in documents:
                fields = dict(document)

                if '_id' in fields:
                    id = fields.pop('_id')
                else:
                    id = fields.pop('id', None)

                additions.append((name, id, fields))

        if len(additions) == 0:
            return futures.resolved()

        tag = self._tag()
        future = self._await_tagged('added', tag, len(additions))

        for name, id, fields in additions:
            message = Synthesized(tag, msg='added', collection=name, id=id, fields=fields)
            self.connection.emit('added', message)

        return future


    def export_data(self, format='string'):
        """ Export every collection. The default *format*, 'string',
            returns extended JSON text; 'raw' returns a deep copy of the
            underlying dictionary of collections.
        """

        with self._store_lock:
            exported = copy.deepcopy(self.collections)

        if format is None or format == 'string':
            return ejson.stringify(exported)

        if format == 'raw':
            return exported

        raise ValueError('unknown export format: ' + repr(format))


    def mark_as_ready(self, subs):
        """ Mark each :class:`ddpmirror.Subscription` in *subs* as ready, as
            if the server had sent 'ready' for them. Returns a future that
            resolves once the 'ready' event has been dispatched.
        """

        tag = self._tag()
        future = self._await_tagged('ready', tag, 1)

        ids = list()
        for sub in subs:
            ids.append(sub.id)

        message = Synthesized(tag, msg='ready', subs=ids)
        self.connection.emit('ready', message)

        return future


# end of class Client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
