"""
Contacts and contact group membership.
"""

from marketing_platform.contacts.models import Contact, ContactGroup, ContactGroupMember

__all__ = ["Contact", "ContactGroup", "ContactGroupMember"]
