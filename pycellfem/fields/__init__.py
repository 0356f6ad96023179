from .field import (Field, GenericField, ConstantField, FunctionField, ZeroField,
                    FieldGradient, FieldHessian, as_field, evaluate, evaluate_into,
                    return_cache, return_value_shape, gradient, grad, hessian, zero)
from .operations import (Operation, BilinearOperation, OperationField, add, sub, neg,
                         mul, dot, inner, outer, compose, inv, det)
from .analytic import Analytic, coordinate_symbols
__all__=['Field','GenericField','ConstantField','FunctionField','ZeroField',
         'FieldGradient','FieldHessian','as_field','evaluate','evaluate_into',
         'return_cache','return_value_shape','gradient','grad','hessian','zero',
         'Operation','BilinearOperation','OperationField','add','sub','neg','mul',
         'dot','inner','outer','compose','inv','det','Analytic','coordinate_symbols']
