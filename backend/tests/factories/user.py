"""Factory Boy definition for :class:`tokenauth.models.user.User`."""

from __future__ import annotations

import factory

from tests.factories import BaseFactory
from tests.factories.role import RoleFactory
from tokenauth.models.user import User

DEFAULT_PASSWORD = "Tr0ub4dor&Zebra"


class UserFactory(BaseFactory):
    """
    Build persisted :class:`tokenauth.models.user.User` instances.

    Notes
    -----
    - ``password`` goes through the model setter so the hash is real.
    - ``roles`` defaults to ``["ROLE_USER"]``; pass ``roles=[]`` for none.
    """

    class Meta:
        model = User

    id = None  # let autoincrement handle it
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    username = factory.Sequence(lambda n: f"user{n}")
    password_hash = factory.LazyFunction(lambda: "")  # set via postgen

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password using model setter (ensures hashing)."""
        obj.password = extracted or DEFAULT_PASSWORD

    @factory.post_generation
    def roles(obj, create, extracted, **kwargs):
        names = ["ROLE_USER"] if extracted is None else extracted
        if not create:
            return
        for name in names:
            obj.roles.append(RoleFactory(name=name))
