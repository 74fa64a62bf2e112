"""Instructor grade rules: fee multipliers and promotion eligibility.

Grades are never changed automatically. ``is_eligible_for`` and
``recommend_grade`` only inform an admin who regrades by hand.
"""

from typing import Any, Mapping, Optional

from app.core.exceptions import UnknownGrade
from app.core.rules import GradeRule, RuleConfig
from app.models.enums import INTERNAL_GRADES, InstructorGrade, InstructorType


class GradeRuleEngine:
    def __init__(self, grades: Mapping[InstructorGrade, GradeRule]):
        self._grades = dict(grades)

    @classmethod
    def from_rules(cls, rules: RuleConfig) -> "GradeRuleEngine":
        return cls(rules.grades)

    def resolve(self, instructor_type: Any, grade: Any) -> GradeRule:
        """
        Resolve the stored grade of an instructor to its rule.

        Raises:
            UnknownGrade: the grade is missing, unknown, belongs to the other
                instructor type, or has no configured rule
        """
        try:
            kind = InstructorType(instructor_type)
            resolved = InstructorGrade(grade)
        except ValueError:
            raise UnknownGrade(instructor_type, grade)
        if resolved.instructor_type != kind:
            raise UnknownGrade(kind.value, resolved.value)
        rule = self._grades.get(resolved)
        if rule is None:
            raise UnknownGrade(kind.value, resolved.value)
        return rule

    def multiplier(self, instructor_type: Any, grade: Any) -> float:
        return self.resolve(instructor_type, grade).fee_multiplier

    def is_eligible_for(self, instructor: Any, grade: Any) -> bool:
        """class count >= minClasses AND rating >= minRating, within the instructor's grade family"""
        rule = self.resolve(instructor.instructor_type, grade)
        rating = instructor.rating if instructor.rating is not None else 0.0
        total_classes = instructor.total_classes or 0
        return total_classes >= rule.min_classes and rating >= rule.min_rating

    def recommend_grade(self, instructor: Any) -> Optional[InstructorGrade]:
        """Highest internal grade the instructor qualifies for; None for external instructors"""
        if InstructorType(instructor.instructor_type) != InstructorType.INTERNAL:
            return None
        for grade in reversed(INTERNAL_GRADES):
            if grade in self._grades and self.is_eligible_for(instructor, grade):
                return grade
        return None

    def next_grade(self, grade: Any) -> Optional[GradeRule]:
        """Rule of the next internal level, or None at the top / for external grades"""
        try:
            current = InstructorGrade(grade)
        except ValueError:
            return None
        if current not in INTERNAL_GRADES:
            return None
        index = INTERNAL_GRADES.index(current)
        if index + 1 >= len(INTERNAL_GRADES):
            return None
        return self._grades.get(INTERNAL_GRADES[index + 1])
