from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import pytest
from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer,
                        LargeBinary, Numeric, String, Table, Text,
                        create_engine)
from sqlalchemy.orm import (DeclarativeBase, Mapped, Session, mapped_column,
                            relationship)

from entity_importer.importer import RecordImporter
from entity_importer.schema import EntityRegistry


class Base(DeclarativeBase):
    pass


department_projects = Table(
    "department_projects",
    Base.metadata,
    Column("department_id", ForeignKey("departments.id"), primary_key=True),
    Column("project_id", ForeignKey("projects.id"), primary_key=True),
)


class Address(Base):
    __tablename__ = "addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    street: Mapped[Optional[str]] = mapped_column(String(200))
    city: Mapped[Optional[str]] = mapped_column(String(100))


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[Optional[str]] = mapped_column(
        String(20), info={"primary_key": True, "import_name": "departmentCode"}
    )
    name: Mapped[Optional[str]] = mapped_column(String(100))
    founded: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), info={"date_format": "yyyy-MM-dd"}
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), info={"import_name": "updatedAt"}
    )
    budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    headcount: Mapped[Optional[int]] = mapped_column(Integer)
    active: Mapped[Optional[bool]] = mapped_column(Boolean)
    logo: Mapped[Optional[bytes]] = mapped_column(LargeBinary)
    address_id: Mapped[Optional[int]] = mapped_column(ForeignKey("addresses.id"))

    employees: Mapped[List["Employee"]] = relationship(
        back_populates="department", cascade="all, delete-orphan"
    )
    offices: Mapped[List["Office"]] = relationship(
        cascade="all, delete-orphan", info={"merge_policy": "MergeAndPrune"}
    )
    projects: Mapped[List["Project"]] = relationship(
        secondary=department_projects, info={"merge_policy": "Merge"}
    )
    notes: Mapped[List["Note"]] = relationship(
        cascade="all, delete-orphan", info={"merge_policy": "Merge"}
    )
    address: Mapped[Optional[Address]] = relationship(info={"import_name": "location"})


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[Optional[int]] = mapped_column(Integer, info={"primary_key": True})
    name: Mapped[Optional[str]] = mapped_column(String(100))
    department_id: Mapped[Optional[int]] = mapped_column(ForeignKey("departments.id"))

    department: Mapped[Optional[Department]] = relationship(back_populates="employees")


class Office(Base):
    __tablename__ = "offices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[Optional[int]] = mapped_column(Integer, info={"primary_key": True})
    name: Mapped[Optional[str]] = mapped_column(String(100))
    department_id: Mapped[Optional[int]] = mapped_column(ForeignKey("departments.id"))


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[Optional[int]] = mapped_column(Integer, info={"primary_key": True})
    name: Mapped[Optional[str]] = mapped_column(String(100))


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    text: Mapped[Optional[str]] = mapped_column(Text)
    department_id: Mapped[Optional[int]] = mapped_column(ForeignKey("departments.id"))


@pytest.fixture()
def engine():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def registry():
    registry = EntityRegistry()
    registry.register_base(Base)
    return registry


@pytest.fixture()
def importer(registry):
    return RecordImporter(registry)
