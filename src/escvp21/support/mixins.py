class CommonEqualityMixin(object):
    """  equality by class and attribute values, for small value objects such as events. """

    def __eq__(self, other):
        return other.__class__ is self.__class__ and self.__dict__ == other.__dict__

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None


class ReprMixin:
    """ renders the class name followed by the attributes in key sorted order """

    def __repr__(self):
        items = ", ".join("%s=%r" % (key, val) for key, val in sorted(self.__dict__.items()))
        return "%s(%s)" % (type(self).__name__, items)
