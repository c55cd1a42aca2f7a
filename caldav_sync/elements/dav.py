#!/usr/bin/env python
from typing import ClassVar

from .base import BaseElement
from .base import ValuedBaseElement
from caldav_sync.lib.namespace import ns


# Operations
class Propfind(BaseElement):
    tag: ClassVar[str] = ns("D", "propfind")


class PropertyUpdate(BaseElement):
    tag: ClassVar[str] = ns("D", "propertyupdate")


class SyncCollection(BaseElement):
    tag: ClassVar[str] = ns("D", "sync-collection")


# Conditions
class SyncToken(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "sync-token")


class SyncLevel(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "sync-level")


class Limit(BaseElement):
    tag: ClassVar[str] = ns("D", "limit")


class NResults(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "nresults")


# Components / Data
class Prop(BaseElement):
    tag: ClassVar[str] = ns("D", "prop")


class Collection(BaseElement):
    tag: ClassVar[str] = ns("D", "collection")


class Set(BaseElement):
    tag: ClassVar[str] = ns("D", "set")


class Allprop(BaseElement):
    tag: ClassVar[str] = ns("D", "allprop")


# Properties
class ResourceType(BaseElement):
    tag: ClassVar[str] = ns("D", "resourcetype")


class DisplayName(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "displayname")


class GetEtag(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "getetag")


class GetLastModified(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "getlastmodified")


class GetContentLength(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "getcontentlength")


class Href(ValuedBaseElement):
    tag: ClassVar[str] = ns("D", "href")


class Response(BaseElement):
    tag: ClassVar[str] = ns("D", "response")


class Status(BaseElement):
    tag: ClassVar[str] = ns("D", "status")


class PropStat(BaseElement):
    tag: ClassVar[str] = ns("D", "propstat")


class MultiStatus(BaseElement):
    tag: ClassVar[str] = ns("D", "multistatus")


class CurrentUserPrincipal(BaseElement):
    tag: ClassVar[str] = ns("D", "current-user-principal")


class Unauthenticated(BaseElement):
    tag: ClassVar[str] = ns("D", "unauthenticated")


class CurrentUserPrivilegeSet(BaseElement):
    tag: ClassVar[str] = ns("D", "current-user-privilege-set")


class Privilege(BaseElement):
    tag: ClassVar[str] = ns("D", "privilege")
