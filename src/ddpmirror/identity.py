""" Identity comparisons for document and correlation ids. DDP servers are
    not consistent about whether an id arrives as a number or as a string,
    so ids are compared loosely: 1 and '1' are the same id.
"""


def same_id(a, b):
    """ Return True if the two ids refer to the same thing.
    """

    if a == b:
        return True

    if a is None or b is None:
        return False

    return str(a) == str(b)



def index(documents, id):
    """ Return the position of the document with the given *id* in the
        *documents* list, or -1 if there is no such document.
    """

    for position, document in enumerate(documents):
        try:
            other = document['_id']
        except (KeyError, TypeError):
            continue

        if same_id(other, id):
            return position

    return -1



def contains(ids, id):
    """ Return True if *id* is loosely present in the sequence *ids*.
    """

    if ids is None:
        return False

    if isinstance(ids, (str, int)):
        ids = (ids,)

    for other in ids:
        if same_id(other, id):
            return True

    return False


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
