from learnpath.db.models.topic import Topic
from learnpath.db.models.learning_node import LearningNode
from learnpath.db.models.workflow import Workflow
from learnpath.db.models.workflow_edge import WorkflowEdge
from learnpath.db.models.workflow_star import WorkflowStar
from learnpath.db.models.node_pair_validation import NodePairValidation
from learnpath.db.models.user_learning_path import UserLearningPath
from learnpath.db.models.material import Material
from learnpath.db.models.material_page_quiz import MaterialPageQuiz
from learnpath.db.models.user_profile import UserProfile

__all__ = [
    "Topic",
    "LearningNode",
    "Workflow",
    "WorkflowEdge",
    "WorkflowStar",
    "NodePairValidation",
    "UserLearningPath",
    "Material",
    "MaterialPageQuiz",
    "UserProfile",
]
