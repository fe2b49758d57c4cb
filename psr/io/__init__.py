from psr.io.read import read
