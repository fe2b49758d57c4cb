__version__ = "0.1.0"

from psr.mesh.triangulation import ReconstructionTriangulation, VertexType
from psr.reconstruction.parameters import ReconstructionParameters
from psr.reconstruction.function import PoissonReconstructionFunction
