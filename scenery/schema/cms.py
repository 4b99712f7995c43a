"""Reference CMS schema used by scenarios.

Pages form a versioned site tree, files and folders share one table, and
members belong to groups that carry permission codes. Subclasses use
single-table inheritance keyed on ``class_name`` so a fixture declared as a
``"redirector page"`` is still a page for relation purposes.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    exists,
    select,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scenery.common import slug
from scenery.schema.base import Base, Timestamped, Versioned

if typ.TYPE_CHECKING:
    from sqlalchemy.engine.default import DefaultExecutionContext
    from sqlalchemy.ext.asyncio import AsyncSession

PERMISSION_GRANT = 1
PERMISSION_DENY = -1

page_terms = Table(
    "page_terms",
    Base.metadata,
    Column("page_id", ForeignKey("pages.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "term_id", ForeignKey("taxonomy_terms.id", ondelete="CASCADE"), primary_key=True
    ),
)

group_members = Table(
    "group_members",
    Base.metadata,
    Column("group_id", ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "member_id", ForeignKey("members.id", ondelete="CASCADE"), primary_key=True
    ),
)


def _slug_from_title(context: DefaultExecutionContext) -> str | None:
    title = context.get_current_parameters().get("title")
    return slug.url_segment(title) if title else None


class Page(Versioned, Timestamped, Base):
    """Node in the versioned site tree."""

    __tablename__ = "pages"
    __mapper_args__ = {
        "polymorphic_on": "class_name",
        "polymorphic_identity": "Page",
    }
    __scenery_singular__ = "Page"
    __scenery_plural__ = "Pages"
    __scenery_labels__ = {
        "title": "Title",
        "url_segment": "URL",
        "menu_title": "Navigation label",
        "content": "Content",
        "show_in_menus": "Show in menus?",
        "sort": "Sort order",
    }

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    class_name: Mapped[str] = mapped_column(String(64))
    title: Mapped[str | None] = mapped_column(String(255), default=None)
    url_segment: Mapped[str | None] = mapped_column(
        String(255), default=_slug_from_title, index=True
    )
    menu_title: Mapped[str | None] = mapped_column(String(255), default=None)
    content: Mapped[str | None] = mapped_column(Text(), default=None)
    show_in_menus: Mapped[bool] = mapped_column(Boolean, default=True)
    sort: Mapped[int] = mapped_column(Integer, default=0)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"), default=None
    )

    parent: Mapped[Page | None] = relationship(
        remote_side=lambda: [Page.id], back_populates="children"
    )
    children: Mapped[list[Page]] = relationship(back_populates="parent")
    terms: Mapped[list[TaxonomyTerm]] = relationship(
        secondary=page_terms, back_populates="pages"
    )

    def relative_link(self, parent_link: str | None = None) -> str:
        """Return the site-relative URL given the parent's link.

        The root ``home`` page maps to ``/``.
        """
        if self.parent_id is None and self.url_segment == "home":
            return "/"
        return slug.join_segments(parent_link or "", self.url_segment or "")

    @classmethod
    async def require_default_records(cls, session: AsyncSession) -> None:
        """Create the published Home, About Us and Contact Us pages."""
        if await session.scalar(select(exists().select_from(Page))):
            return
        for sort, title in enumerate(("Home", "About Us", "Contact Us"), start=1):
            session.add(
                Page(
                    title=title,
                    url_segment=slug.url_segment(title),
                    content=f"<p>{title}</p>",
                    sort=sort,
                    live_version=1,
                )
            )
        await session.flush()


class RedirectorPage(Page):
    """Page that links to another URL instead of rendering content."""

    __mapper_args__ = {"polymorphic_identity": "RedirectorPage"}
    __scenery_singular__ = "Redirector Page"
    __scenery_plural__ = "Redirector Pages"
    __scenery_labels__ = {
        **Page.__scenery_labels__,
        "redirection_url": "Redirect to URL",
    }

    redirection_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    def relative_link(self, parent_link: str | None = None) -> str:
        """Return the redirect target when one is set."""
        if self.redirection_url:
            return self.redirection_url
        return super().relative_link(parent_link)


class TaxonomyTerm(Timestamped, Base):
    """Tag that can be attached to many pages."""

    __tablename__ = "taxonomy_terms"
    __scenery_singular__ = "Taxonomy Term"
    __scenery_plural__ = "Taxonomy Terms"
    __scenery_labels__ = {
        "name": "Name",
        "sort": "Sort order",
    }

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(255), default=None, index=True)
    sort: Mapped[int] = mapped_column(Integer, default=0)

    pages: Mapped[list[Page]] = relationship(
        secondary=page_terms, back_populates="terms"
    )


class File(Timestamped, Base):
    """Asset record whose content lives in the asset store."""

    __tablename__ = "files"
    __mapper_args__ = {
        "polymorphic_on": "class_name",
        "polymorphic_identity": "File",
    }
    __scenery_singular__ = "File"
    __scenery_plural__ = "Files"
    __scenery_asset_kind__ = "file"
    __scenery_labels__ = {
        "name": "Name",
        "title": "Title",
        "filename": "Filename",
        "show_in_search": "Show in search?",
    }

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    class_name: Mapped[str] = mapped_column(String(64))
    name: Mapped[str | None] = mapped_column(String(255), default=None, index=True)
    title: Mapped[str | None] = mapped_column(String(255), default=None)
    file_filename: Mapped[str | None] = mapped_column(String(1024), default=None)
    file_hash: Mapped[str | None] = mapped_column(String(64), default=None)
    file_variant: Mapped[str | None] = mapped_column(String(64), default=None)
    show_in_search: Mapped[bool] = mapped_column(Boolean, default=True)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("files.id", ondelete="CASCADE"), default=None
    )

    parent: Mapped[File | None] = relationship(
        remote_side=lambda: [File.id], back_populates="children"
    )
    children: Mapped[list[File]] = relationship(back_populates="parent")


class Image(File):
    """File with image content."""

    __mapper_args__ = {"polymorphic_identity": "Image"}
    __scenery_singular__ = "Image"
    __scenery_plural__ = "Images"


class Folder(File):
    """Directory node in the asset tree."""

    __mapper_args__ = {"polymorphic_identity": "Folder"}
    __scenery_singular__ = "Folder"
    __scenery_plural__ = "Folders"
    __scenery_asset_kind__ = "folder"


class Member(Timestamped, Base):
    """CMS user account."""

    __tablename__ = "members"
    __scenery_singular__ = "Member"
    __scenery_plural__ = "Members"
    __scenery_labels__ = {
        "first_name": "First Name",
        "surname": "Surname",
        "email": "Email",
        "password": "Password",
        "locale": "Interface Language",
    }

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    first_name: Mapped[str | None] = mapped_column(String(255), default=None)
    surname: Mapped[str | None] = mapped_column(String(255), default=None)
    email: Mapped[str | None] = mapped_column(String(254), default=None, index=True)
    password: Mapped[str | None] = mapped_column(String(255), default=None)
    locale: Mapped[str] = mapped_column(String(16), default="en_US")

    groups: Mapped[list[Group]] = relationship(
        secondary=group_members, back_populates="members"
    )


class Group(Timestamped, Base):
    """Security group granting permission codes to its members."""

    __tablename__ = "groups"
    __scenery_singular__ = "Group"
    __scenery_plural__ = "Groups"
    __scenery_labels__ = {
        "title": "Title",
        "code": "Group Code",
        "description": "Description",
    }

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str | None] = mapped_column(String(255), default=None)
    code: Mapped[str | None] = mapped_column(
        String(255), default=_slug_from_title, index=True
    )
    description: Mapped[str | None] = mapped_column(Text(), default=None)

    members: Mapped[list[Member]] = relationship(
        secondary=group_members, back_populates="groups"
    )
    permissions: Mapped[list[Permission]] = relationship(
        back_populates="group", cascade="all, delete-orphan"
    )

    @classmethod
    async def require_default_records(cls, session: AsyncSession) -> None:
        """Create the Content Authors and Administrators groups."""
        if await session.scalar(select(exists().select_from(Group))):
            return
        defaults = {
            "Content Authors": (
                "CMS_ACCESS_CMSMain",
                "CMS_ACCESS_AssetAdmin",
                "CMS_ACCESS_ReportAdmin",
            ),
            "Administrators": ("ADMIN",),
        }
        for title, codes in defaults.items():
            group = Group(title=title, code=slug.url_segment(title))
            group.permissions = [Permission(code=code) for code in codes]
            session.add(group)
        await session.flush()


class Permission(Base):
    """Permission code granted (or denied) to a group."""

    __tablename__ = "permissions"
    __scenery_singular__ = "Permission"
    __scenery_plural__ = "Permissions"
    __scenery_labels__ = {"code": "Code"}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(255), index=True)
    arg: Mapped[int] = mapped_column(Integer, default=0)
    type: Mapped[int] = mapped_column(Integer, default=PERMISSION_GRANT)
    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"), default=None
    )

    group: Mapped[Group | None] = relationship(back_populates="permissions")


CMS_MODELS: tuple[type[Base], ...] = (
    Page,
    RedirectorPage,
    TaxonomyTerm,
    File,
    Image,
    Folder,
    Member,
    Group,
    Permission,
)
