# notifications/factories.py
import factory

from users.factories import UserFactory
from .models import Notification, NotificationKind, ReferenceType


class NotificationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Notification

    recipient = factory.SubFactory(UserFactory)
    from_user = factory.SubFactory(UserFactory)
    type = NotificationKind.FOLLOW
    title = "Factory Test Notification"
    message = "This notification is created via Factory Boy."
    reference_type = ReferenceType.USER
    reference_id = factory.LazyAttribute(lambda obj: str(obj.from_user.pk))
    is_read = False
