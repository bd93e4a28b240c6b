"""
Embedded institution calendar data.

Chilean national holidays and the 2025 academic calendar for early
childhood education (NT1/NT2), based on the MINEDUC school calendar.
Dates are calendar days in the institution timezone; "end" is the last day
of a span (inclusive) and is omitted for single-day entries.

Bump DATASET_VERSION whenever an entry is added, moved or removed.
"""

DATASET_VERSION = "2025.2"

HOLIDAYS: tuple[dict, ...] = (
    # 2025
    {"key": "new-year-2025", "title": "New Year's Day", "date": "2025-01-01"},
    {"key": "good-friday-2025", "title": "Good Friday", "date": "2025-04-18",
     "description": "National religious holiday"},
    {"key": "holy-saturday-2025", "title": "Holy Saturday", "date": "2025-04-19",
     "description": "National religious holiday"},
    {"key": "labour-day-2025", "title": "Labour Day", "date": "2025-05-01"},
    {"key": "navy-day-2025", "title": "Navy Day", "date": "2025-05-21",
     "description": "Glorias Navales"},
    {"key": "indigenous-peoples-day-2025", "title": "National Indigenous Peoples Day",
     "date": "2025-06-20"},
    {"key": "saint-peter-paul-2025", "title": "Saint Peter and Saint Paul", "date": "2025-06-29"},
    {"key": "our-lady-of-carmen-2025", "title": "Our Lady of Mount Carmel", "date": "2025-07-16"},
    {"key": "assumption-2025", "title": "Assumption of Mary", "date": "2025-08-15"},
    {"key": "independence-day-2025", "title": "Independence Day", "date": "2025-09-18",
     "description": "National holiday - Fiestas Patrias"},
    {"key": "army-day-2025", "title": "Army Day", "date": "2025-09-19",
     "description": "Glorias del Ejercito"},
    {"key": "two-worlds-2025", "title": "Meeting of Two Worlds", "date": "2025-10-12"},
    {"key": "reformation-day-2025", "title": "Reformation Day", "date": "2025-10-31"},
    {"key": "all-saints-2025", "title": "All Saints' Day", "date": "2025-11-01"},
    {"key": "immaculate-conception-2025", "title": "Immaculate Conception", "date": "2025-12-08"},
    {"key": "christmas-2025", "title": "Christmas Day", "date": "2025-12-25"},
    # 2026
    {"key": "new-year-2026", "title": "New Year's Day", "date": "2026-01-01"},
    {"key": "good-friday-2026", "title": "Good Friday", "date": "2026-04-03",
     "description": "National religious holiday"},
    {"key": "holy-saturday-2026", "title": "Holy Saturday", "date": "2026-04-04",
     "description": "National religious holiday"},
    {"key": "labour-day-2026", "title": "Labour Day", "date": "2026-05-01"},
    {"key": "navy-day-2026", "title": "Navy Day", "date": "2026-05-21",
     "description": "Glorias Navales"},
    {"key": "indigenous-peoples-day-2026", "title": "National Indigenous Peoples Day",
     "date": "2026-06-21"},
    {"key": "saint-peter-paul-2026", "title": "Saint Peter and Saint Paul", "date": "2026-06-29"},
    {"key": "our-lady-of-carmen-2026", "title": "Our Lady of Mount Carmel", "date": "2026-07-16"},
    {"key": "assumption-2026", "title": "Assumption of Mary", "date": "2026-08-15"},
    {"key": "independence-day-2026", "title": "Independence Day", "date": "2026-09-18",
     "description": "National holiday - Fiestas Patrias"},
    {"key": "army-day-2026", "title": "Army Day", "date": "2026-09-19",
     "description": "Glorias del Ejercito"},
    {"key": "two-worlds-2026", "title": "Meeting of Two Worlds", "date": "2026-10-12"},
    {"key": "reformation-day-2026", "title": "Reformation Day", "date": "2026-10-31"},
    {"key": "all-saints-2026", "title": "All Saints' Day", "date": "2026-11-01"},
    {"key": "immaculate-conception-2026", "title": "Immaculate Conception", "date": "2026-12-08"},
    {"key": "christmas-2026", "title": "Christmas Day", "date": "2026-12-25"},
)

ACADEMIC_EVENTS: tuple[dict, ...] = (
    {"key": "teacher-planning-2025", "title": "Teacher Planning Begins", "date": "2025-03-03",
     "category": "ACADEMIC", "period": "PRIMER_SEMESTRE",
     "description": "Planning meetings, classroom preparation and pedagogical coordination"},
    {"key": "school-year-start-2025", "title": "First Day of School 2025", "date": "2025-03-05",
     "category": "ACADEMIC", "priority": "HIGH", "period": "PRIMER_SEMESTRE",
     "description": "First day of classes for NT1 and NT2 students"},
    {"key": "parent-meeting-march-2025", "title": "Parent Meeting - Start of Year",
     "date": "2025-03-12", "category": "PARENT", "period": "PRIMER_SEMESTRE",
     "description": "Teaching team introductions, yearly goals and activity calendar"},
    {"key": "world-water-day-2025", "title": "World Water Day", "date": "2025-03-22",
     "category": "SPECIAL", "period": "PRIMER_SEMESTRE"},
    {"key": "world-book-day-2025", "title": "World Book Day", "date": "2025-04-23",
     "category": "SPECIAL", "period": "PRIMER_SEMESTRE",
     "description": "Reading promotion and storytelling activities"},
    {"key": "first-term-evaluations-2025", "title": "First Term Evaluations",
     "date": "2025-04-28", "end": "2025-05-02", "category": "EXAM", "priority": "HIGH",
     "period": "PRIMER_SEMESTRE",
     "description": "Diagnostic and formative evaluation period"},
    {"key": "mothers-day-2025", "title": "Mother's Day Celebration", "date": "2025-05-09",
     "category": "SPECIAL", "period": "PRIMER_SEMESTRE"},
    {"key": "parent-meeting-may-2025", "title": "Parent Meeting - First Term",
     "date": "2025-05-28", "category": "PARENT", "period": "PRIMER_SEMESTRE",
     "description": "Evaluation reports and feedback"},
    {"key": "environment-day-2025", "title": "World Environment Day", "date": "2025-06-05",
     "category": "SPECIAL", "period": "PRIMER_SEMESTRE"},
    {"key": "fathers-day-2025", "title": "Father's Day Celebration", "date": "2025-06-13",
     "category": "SPECIAL", "period": "PRIMER_SEMESTRE"},
    {"key": "winter-break-2025", "title": "Winter Break", "date": "2025-06-23",
     "end": "2025-07-04", "category": "VACATION", "priority": "HIGH", "period": "VACACIONES"},
    {"key": "second-semester-start-2025", "title": "Second Semester Begins",
     "date": "2025-07-07", "category": "ACADEMIC", "priority": "HIGH",
     "period": "SEGUNDO_SEMESTRE"},
    {"key": "parent-meeting-july-2025", "title": "Parent Meeting - Second Semester",
     "date": "2025-07-16", "category": "PARENT", "period": "SEGUNDO_SEMESTRE"},
    {"key": "early-childhood-week-2025", "title": "Early Childhood Education Week",
     "date": "2025-08-18", "end": "2025-08-22", "category": "SPECIAL",
     "period": "SEGUNDO_SEMESTRE"},
    {"key": "second-term-evaluations-2025", "title": "Second Term Evaluations",
     "date": "2025-08-25", "end": "2025-08-29", "category": "EXAM", "priority": "HIGH",
     "period": "SEGUNDO_SEMESTRE"},
    {"key": "national-festivities-assembly-2025", "title": "Fiestas Patrias Assembly",
     "date": "2025-09-17", "category": "SPECIAL", "period": "SEGUNDO_SEMESTRE",
     "description": "Traditional dances, food and games"},
    {"key": "parent-meeting-september-2025", "title": "Parent Meeting - Fiestas Patrias",
     "date": "2025-09-24", "category": "PARENT", "period": "SEGUNDO_SEMESTRE"},
    {"key": "teachers-day-2025", "title": "Teachers' Day", "date": "2025-10-16",
     "category": "SPECIAL", "period": "SEGUNDO_SEMESTRE"},
    {"key": "final-evaluations-2025", "title": "Final Evaluations", "date": "2025-11-17",
     "end": "2025-11-21", "category": "EXAM", "priority": "HIGH",
     "period": "SEGUNDO_SEMESTRE"},
    {"key": "parent-meeting-november-2025", "title": "Parent Meeting - Final Evaluation",
     "date": "2025-11-26", "category": "PARENT", "period": "SEGUNDO_SEMESTRE",
     "description": "Final reports and planning for next year"},
    {"key": "graduation-nt2-2025", "title": "NT2 Graduation Ceremony", "date": "2025-12-12",
     "category": "SPECIAL", "priority": "HIGH", "period": "SEGUNDO_SEMESTRE",
     "grade_level": "NT2"},
    {"key": "last-day-of-classes-2025", "title": "Last Day of Classes 2025",
     "date": "2025-12-19", "category": "ACADEMIC", "priority": "HIGH",
     "period": "SEGUNDO_SEMESTRE"},
    {"key": "summer-break-2025", "title": "Summer Break", "date": "2025-12-22",
     "end": "2026-02-27", "category": "VACATION", "period": "VACACIONES"},
)
