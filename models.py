# models.py

import uuid

import sqlalchemy as sa
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AuditMixin:
    created_by = sa.Column(sa.String(100), nullable=True)
    created_date = sa.Column(sa.DateTime, nullable=False, default=sa.func.now())
    modified_by = sa.Column(sa.String(100), nullable=True)
    modified_date = sa.Column(sa.DateTime, nullable=True)


class User(AuditMixin, Base):
    __tablename__ = "users"

    id = sa.Column(sa.String(450), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = sa.Column(sa.String(256), nullable=False, unique=True, index=True)
    first_name = sa.Column(sa.String(100), nullable=False)
    last_name = sa.Column(sa.String(100), nullable=False)
    password_hash = sa.Column(sa.String(255), nullable=False)
    is_active = sa.Column(sa.Boolean, nullable=False, default=True)
    access_failed_count = sa.Column(sa.Integer, nullable=False, default=0)
    lockout_end = sa.Column(sa.DateTime, nullable=True)
    last_login_date = sa.Column(sa.DateTime, nullable=True)

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"


class Category(AuditMixin, Base):
    __tablename__ = "categories"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "name", name="uq_categories_user_id_name"),
    )

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    name = sa.Column(sa.String(100), nullable=False)
    slug = sa.Column(sa.String(120), nullable=True, unique=True)
    description = sa.Column(sa.String(500), nullable=True)
    color = sa.Column(sa.String(50), nullable=True)
    user_id = sa.Column(
        sa.String(450), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # RESTRICT: children must be removed or re-parented first
    parent_category_id = sa.Column(
        sa.Integer, sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    is_active = sa.Column(sa.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}', user_id='{self.user_id}')>"


class Post(AuditMixin, Base):
    __tablename__ = "posts"
    __table_args__ = (
        sa.Index("ix_posts_is_published_publication_date", "is_published", "publication_date"),
    )

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    author_id = sa.Column(
        sa.String(450), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = sa.Column(
        sa.Integer, sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title = sa.Column(sa.String(255), nullable=False)
    slug = sa.Column(sa.String(255), nullable=False, unique=True)
    content_body = sa.Column(sa.Text, nullable=True)
    featured_image_url = sa.Column(sa.String(500), nullable=True)
    meta_description = sa.Column(sa.String(300), nullable=True)
    publication_date = sa.Column(sa.DateTime, nullable=True, index=True)
    is_published = sa.Column(sa.Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Post(id={self.id}, slug='{self.slug}')>"


class LeadMagnet(AuditMixin, Base):
    __tablename__ = "lead_magnets"
    __table_args__ = (
        sa.Index("ix_lead_magnets_category_id_is_active", "category_id", "is_active"),
    )

    id = sa.Column(sa.Integer, primary_key=True, index=True)
    category_id = sa.Column(
        sa.Integer, sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    title = sa.Column(sa.String(255), nullable=False)
    form_action_url = sa.Column(sa.String(500), nullable=True)
    download_file_url = sa.Column(sa.String(500), nullable=True)
    is_active = sa.Column(sa.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<LeadMagnet(id={self.id}, title='{self.title}')>"
