"""
Dropdown Options

Fixed enumerations accepted by the application form. The literal "Other"
is a sentinel that requires an accompanying free-text value.
"""

OTHER = "Other"

GENDER_OPTIONS = ("Male", "Female", "Other")

INTERNSHIP_TOPICS = (
    "Web Development",
    "Mobile App Development",
    "Data Science",
    "Machine Learning",
    "Cloud Computing",
    "Cyber Security",
    "Database Management",
    "Software Testing",
    "UI/UX Design",
    "Digital Marketing",
    "Python Programming",
    "Java Programming",
    "C/C++ Programming",
    "Artificial Intelligence",
    "Internet of Things (IoT)",
)

COURSES = (
    "B.Sc.",
    "B.A.",
    "B.Com.",
    "BCA",
    "BBA",
    "M.Sc.",
    "M.A.",
    "M.Com.",
    "MCA",
    "Other",
)

COLLEGES = (
    "A.N. College, Patna",
    "Patna Science College",
    "Patna Women's College",
    "B.N. College, Patna",
    "Magadh Mahila College",
    "College of Commerce, Patna",
    "Vanijya Mahavidyalaya",
    "L.N. Mishra College of Business Management",
    "J.D. Women's College",
    "Ram Lakhan Singh Yadav College",
    "Patliputra University (Main Campus)",
    "Other",
)

HONOURS_SUBJECTS = (
    "Computer Science",
    "Information Technology",
    "Computer Application (BCA)",
    "Electronics",
    "Mathematics",
    "Physics",
    "Chemistry",
    "Statistics",
    "Economics",
    "Commerce",
    "Management",
    "Other",
)

SEMESTERS = (
    "1st Semester",
    "2nd Semester",
    "3rd Semester",
    "4th Semester",
    "5th Semester",
    "6th Semester",
    "7th Semester",
    "8th Semester",
)

DEFAULT_UNIVERSITY = "Patliputra University"
