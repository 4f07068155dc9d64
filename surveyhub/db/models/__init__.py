from .user import User, UserRole
from .survey import Survey, Visibility
from .question import Question, QuestionType, Choice
from .response import Response, Answer, AnswerKind
from .teacher_student import TeacherStudent
