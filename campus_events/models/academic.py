"""
Academic taxonomy models: departments, courses, subjects, people and timetables
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from campus_events.core.db import Base

class Department(Base):
    __tablename__ = "departments"

    department_id = Column(String(50), primary_key=True)
    department_name = Column(String(255), unique=True, nullable=False)
    head_employee_id = Column(String(50), nullable=True)

class Course(Base):
    __tablename__ = "courses"

    course_id = Column(String(50), primary_key=True)
    course_name = Column(String(255), unique=True, nullable=False)
    department_id = Column(String(50), ForeignKey("departments.department_id"), nullable=False)

    department = relationship("Department")

class Subject(Base):
    __tablename__ = "subjects"

    subject_id = Column(String(50), primary_key=True)
    subject_name = Column(String(255), nullable=False)
    subject_code = Column(String(50), unique=True, nullable=False, index=True)
    course_id = Column(String(50), ForeignKey("courses.course_id"), nullable=False)
    year = Column(Integer, nullable=False)

class Student(Base):
    __tablename__ = "students"

    student_id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    class_roll_no = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    section = Column(String(20), nullable=False)
    course_id = Column(String(50), ForeignKey("courses.course_id"), nullable=False)

    course = relationship("Course")

    @property
    def cohort(self) -> tuple:
        return (self.course_id, self.year, self.section)

class Employee(Base):
    __tablename__ = "employees"

    employee_id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    department_id = Column(String(50), ForeignKey("departments.department_id"), nullable=True)
    is_resource_incharge = Column(Boolean, nullable=False, default=False)

    department = relationship("Department")

class TimeTable(Base):
    """A cohort: one (course, year, section) group"""
    __tablename__ = "time_tables"

    time_table_id = Column(String(50), primary_key=True)
    course_id = Column(String(50), ForeignKey("courses.course_id"), nullable=False)
    year = Column(Integer, nullable=False)
    section = Column(String(20), nullable=False)

    course = relationship("Course")
    entries = relationship("TimeTableEntry", back_populates="time_table", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("course_id", "year", "section", name="uq_time_tables_cohort"),
    )

    @property
    def cohort(self) -> tuple:
        return (self.course_id, self.year, self.section)

class TimeTableEntry(Base):
    """A weekly recurring class"""
    __tablename__ = "time_table_entries"

    entry_id = Column(String(50), primary_key=True)
    time_table_id = Column(String(50), ForeignKey("time_tables.time_table_id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(String(50), ForeignKey("subjects.subject_id"), nullable=False)
    employee_id = Column(String(50), ForeignKey("employees.employee_id"), nullable=False)
    day = Column(String(10), nullable=False)  # weekday name, e.g. "Monday"
    time_slot = Column(String(20), nullable=False)  # "HH:MM-HH:MM"
    room_no = Column(String(50))

    time_table = relationship("TimeTable", back_populates="entries")
    subject = relationship("Subject")
    employee = relationship("Employee")
