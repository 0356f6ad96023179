"""pycellfem.assembly.testing"""
from __future__ import annotations


def check_assembler(a, matdata, vecdata, data):
    """
    Exercise the whole Assembler contract on caller-supplied data and assert
    that every produced matrix/vector has the assembler's size.
    """
    A = a.allocate_matrix(matdata)
    assert a.num_cols() == A.shape[1]
    assert a.num_rows() == A.shape[0]
    a.assemble_matrix_into(A, matdata)
    a.assemble_matrix_add(A, matdata)
    A = a.assemble_matrix(matdata)
    assert a.num_cols() == A.shape[1]
    assert a.num_rows() == A.shape[0]

    b = a.allocate_vector(vecdata)
    assert a.num_rows() == len(b)
    a.assemble_vector_into(b, vecdata)
    a.assemble_vector_add(b, vecdata)
    b = a.assemble_vector(vecdata)
    assert a.num_rows() == len(b)

    A, b = a.allocate_matrix_and_vector(data)
    a.assemble_matrix_and_vector_into(A, b, data)
    a.assemble_matrix_and_vector_add(A, b, data)
    assert a.num_cols() == A.shape[1]
    assert a.num_rows() == A.shape[0]
    assert a.num_rows() == len(b)
    A, b = a.assemble_matrix_and_vector(data)
    assert a.num_cols() == A.shape[1]
    assert a.num_rows() == A.shape[0]
    assert a.num_rows() == len(b)
